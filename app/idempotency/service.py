"""Idempotency store front: lookup, deferred record, expiry purge."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from app.idempotency.models import IdempotencyRecord
from app.storage.base import IdempotencyStore

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH"})


class IdempotencyService:
    def __init__(self, store: IdempotencyStore, ttl_hours: int = 24):
        self._store = store
        self._ttl = timedelta(hours=ttl_hours)

    async def lookup(self, key: str, user_id: str) -> Optional[IdempotencyRecord]:
        """Live record for `key`, if it was recorded for this same caller."""
        record = await self._store.get(key)
        if record is None or record.is_expired():
            return None
        if record.user_id != user_id:
            logger.warning("idempotency: key=%s belongs to another caller, not replaying", key)
            return None
        return record

    async def record(
        self,
        key: str,
        user_id: str,
        method: str,
        path: str,
        status_code: int,
        headers: List[Tuple[str, str]],
        body: str,
    ) -> None:
        """Persist a successful response. Never raises.

        Runs after the response has been sent, so a failure here can only be
        logged; the client already has its answer.
        """
        if not 200 <= status_code < 300:
            return
        now = datetime.utcnow()
        record = IdempotencyRecord(
            key=key,
            user_id=user_id,
            method=method,
            path=path,
            status_code=status_code,
            headers=headers,
            body=body,
            created_at=now,
            expires_at=now + self._ttl,
        )
        try:
            created = await self._store.add(record)
        except Exception:
            logger.exception("idempotency: failed to store key=%s path=%s", key, path)
            return
        if not created:
            logger.info("idempotency: key=%s already recorded, keeping the first response", key)

    async def purge_expired(self) -> int:
        return await self._store.purge_expired(datetime.utcnow())
