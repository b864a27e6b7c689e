"""Job executor: drives one persisted record from pending to a terminal state.

This is the worker function handed to the dispatcher. It is the only code
that changes a record's status after creation.
"""

import asyncio
import logging
from typing import Optional, Tuple, Union

from app.collaborators.base import Collaborators
from app.evaluation.models import JudgeEvaluation
from app.jobs.dispatcher import JobDispatcher
from app.jobs.handlers import HANDLERS, ExecutionContext
from app.jobs.models import JobKind, JobRecord, JobStatus, TaskToken
from app.storage.registry import Stores
from app.storage.temp_results import ArtifactStore

logger = logging.getLogger(__name__)

RESTART_MESSAGE = "Interrupted by service restart"

Record = Union[JobRecord, JudgeEvaluation]


class JobExecutor:
    def __init__(
        self,
        stores: Stores,
        collaborators: Collaborators,
        artifacts: ArtifactStore,
        timeout_seconds: Optional[float] = 600,
    ):
        self._stores = stores
        self._collaborators = collaborators
        self._artifacts = artifacts
        self._timeout = timeout_seconds or None

    def _store_for(self, kind: JobKind):
        if kind == JobKind.JUDGE_EVALUATE:
            return self._stores.evaluations
        return self._stores.jobs

    async def run(self, token: TaskToken) -> None:
        """Process one token. Job failures end up on the record, never raised."""
        store = self._store_for(token.kind)
        record: Optional[Record] = await store.get(token.record_id)
        if record is None:
            logger.warning("%s %s: record vanished before processing", token.kind.value, token.record_id)
            return
        if record.status != JobStatus.PENDING:
            logger.info(
                "%s %s: already %s, skipping",
                token.kind.value, record.id, record.status.value,
            )
            return

        record.mark_processing()
        await store.save(record)
        logger.info("%s %s: processing", token.kind.value, record.id)

        async def progress(value: int) -> None:
            record.advance(value)
            await store.save(record)

        ctx = ExecutionContext(
            stores=self._stores,
            collaborators=self._collaborators,
            artifacts=self._artifacts,
            progress=progress,
        )
        handler = HANDLERS[token.kind]
        try:
            await asyncio.wait_for(handler(record, ctx), timeout=self._timeout)
        except asyncio.TimeoutError:
            record.mark_failed(f"Job timed out after {self._timeout:g} seconds")
            logger.error("%s %s: timed out", token.kind.value, record.id)
        except Exception as exc:
            record.mark_failed(str(exc) or type(exc).__name__)
            logger.exception("%s %s: failed", token.kind.value, record.id)
        else:
            record.mark_completed()
            logger.info("%s %s: completed", token.kind.value, record.id)
        await store.save(record)

        if record.status == JobStatus.COMPLETED:
            await self._run_completion_hooks(token, record, ctx)

    async def _run_completion_hooks(self, token: TaskToken, record: Record, ctx: ExecutionContext) -> None:
        # Runs outside the timeout: the completed record is already persisted
        for hook in ctx.completion_hooks:
            try:
                await hook()
            except Exception:
                logger.exception("%s %s: completion hook failed", token.kind.value, record.id)

    async def recover_unfinished(self, dispatcher: JobDispatcher) -> Tuple[int, int]:
        """Re-queue pending records and fail the ones a previous process left running.

        Returns (requeued, failed).
        """
        requeued = failed = 0
        sources = [
            (self._stores.jobs, None),
            (self._stores.evaluations, JobKind.JUDGE_EVALUATE),
        ]
        for store, fixed_kind in sources:
            for record in await store.list_unfinished():
                kind = fixed_kind or record.kind
                if record.status == JobStatus.PENDING:
                    await dispatcher.submit(TaskToken(kind=kind, record_id=record.id))
                    requeued += 1
                else:
                    record.mark_failed(RESTART_MESSAGE)
                    await store.save(record)
                    failed += 1
        if requeued or failed:
            logger.info("Recovery: %d record(s) re-queued, %d failed", requeued, failed)
        return requeued, failed
