"""Route class that makes mutating endpoints idempotent per Idempotency-Key.

Wraps the endpoint's handler and looks at the Response it returns; nothing
about the framework's send path is patched. A keyed request is authenticated
before the cache is consulted, and a recorded response is only replayed to
the caller that produced it; role checks still run in the endpoint.
"""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.routing import APIRoute
from starlette.background import BackgroundTask, BackgroundTasks

from app.auth.supabase_auth import authenticate_request
from app.idempotency.service import MUTATING_METHODS, IdempotencyService

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"

# Wired in during lifespan (same pattern as the API modules)
_service: Optional[IdempotencyService] = None


def set_service(service: Optional[IdempotencyService]) -> None:
    global _service
    _service = service


class IdempotentRoute(APIRoute):
    def get_route_handler(self) -> Callable:
        original_handler = super().get_route_handler()

        async def idempotent_handler(request: Request) -> Response:
            key = request.headers.get(IDEMPOTENCY_HEADER)
            if request.method not in MUTATING_METHODS or not key or _service is None:
                return await original_handler(request)

            # Identity first: a replay must never skip authentication
            user = await authenticate_request(request)
            try:
                cached = await _service.lookup(key, user.id)
            except Exception:
                logger.exception("idempotency: lookup failed for key=%s, running handler", key)
                cached = None
            if cached is not None:
                logger.info("idempotency: replaying key=%s (%s %s)", key, cached.method, cached.path)
                return cached.to_response()

            response = await original_handler(request)
            if 200 <= response.status_code < 300:
                _defer_record(response, _service, key, user.id, request)
            return response

        return idempotent_handler


def _defer_record(
    response: Response,
    service: IdempotencyService,
    key: str,
    user_id: str,
    request: Request,
) -> None:
    body = getattr(response, "body", None)
    if body is None:
        logger.warning("idempotency: %s response has no buffered body, key=%s not recorded",
                       type(response).__name__, key)
        return

    headers = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in response.raw_headers]
    task = BackgroundTask(
        service.record,
        key,
        user_id,
        request.method,
        request.url.path,
        response.status_code,
        headers,
        body.decode("utf-8"),
    )
    # Background tasks run after the response has been sent to the client
    if response.background is None:
        response.background = task
    else:
        response.background = BackgroundTasks(tasks=[response.background, task])
