"""Cached response for one idempotency key."""

from datetime import datetime
from typing import List, Tuple
from pydantic import BaseModel, Field
from starlette.responses import Response


class IdempotencyRecord(BaseModel):
    """Written once after the first 2xx response for a key, never overwritten.

    Only the caller that produced the response (`user_id`) gets it replayed.
    """
    key: str
    user_id: str
    method: str
    path: str
    status_code: int
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime

    def is_expired(self, now: datetime = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at

    def to_response(self) -> Response:
        """Replay the recorded status, headers and body verbatim."""
        response = Response(content=self.body.encode("utf-8"), status_code=self.status_code)
        response.raw_headers = [
            (name.encode("latin-1"), value.encode("latin-1")) for name, value in self.headers
        ]
        return response
