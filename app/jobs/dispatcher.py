"""Job dispatcher interface."""

from abc import ABC, abstractmethod

from app.jobs.models import TaskToken


class JobDispatcher(ABC):
    """Abstract interface for job dispatching.

    The dispatcher only carries task tokens. The record each token points at
    is already persisted, so a lost token can be rebuilt from storage.
    """

    @abstractmethod
    async def submit(self, token: TaskToken) -> str:
        """Queue a persisted record for processing. Returns its id."""
        ...

    @abstractmethod
    def pending(self) -> int:
        """Number of tokens waiting for a worker."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher (e.g., start worker loops)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...
