"""Wires stores, collaborators, the worker pool and the services together."""

from dataclasses import dataclass
from typing import Optional

from app.collaborators.base import Collaborators, default_collaborators
from app.config import Settings
from app.idempotency.service import IdempotencyService
from app.jobs.executor import JobExecutor
from app.jobs.in_process_queue import InProcessQueue
from app.jobs.service import JobGateway
from app.storage.registry import Stores, build_stores
from app.storage.temp_results import ArtifactStore
from app.usage.limiter import UsageLimiter


@dataclass
class Container:
    stores: Stores
    collaborators: Collaborators
    artifacts: ArtifactStore
    executor: JobExecutor
    dispatcher: InProcessQueue
    limiter: UsageLimiter
    gateway: JobGateway
    idempotency: IdempotencyService


def build_container(
    settings: Settings,
    stores: Optional[Stores] = None,
    collaborators: Optional[Collaborators] = None,
) -> Container:
    stores = stores or build_stores(settings)
    collaborators = collaborators or default_collaborators(settings)
    artifacts = ArtifactStore(settings.artifacts_dir, ttl_hours=settings.artifact_ttl_hours)

    executor = JobExecutor(
        stores,
        collaborators,
        artifacts,
        timeout_seconds=settings.job_timeout_seconds,
    )
    dispatcher = InProcessQueue(
        worker_fn=executor.run,
        worker_count=settings.worker_count,
        maxsize=settings.job_queue_maxsize,
    )
    limiter = UsageLimiter(stores.users)
    return Container(
        stores=stores,
        collaborators=collaborators,
        artifacts=artifacts,
        executor=executor,
        dispatcher=dispatcher,
        limiter=limiter,
        gateway=JobGateway(stores, dispatcher, limiter),
        idempotency=IdempotencyService(stores.idempotency, ttl_hours=settings.idempotency_ttl_hours),
    )
