"""Errors raised by the job layer.

Everything except InvalidTransition and CollaboratorUnavailable is raised
before a job exists and is mapped to an HTTP error by the API layer.
"""

from typing import Optional, Union


class JobError(Exception):
    status_code = 500
    code: Optional[str] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ResourceNotFound(JobError):
    status_code = 404


class InvalidJobRequest(JobError):
    status_code = 400


class AccessDenied(JobError):
    status_code = 403


class UserBlocked(JobError):
    status_code = 403
    code = "USER_BLOCKED"

    def __init__(self, message: str = "Your account has been blocked. Please contact support."):
        super().__init__(message)


class QuotaExceeded(JobError):
    status_code = 429
    code = "LIMIT_REACHED"

    def __init__(self, message: str, limit: Union[int, str, None], used: int, plan_id: str):
        super().__init__(message)
        self.limit = limit
        self.used = used
        self.plan_id = plan_id


class CollaboratorUnavailable(Exception):
    """An external parser/renderer is missing or refused the work."""


class InvalidTransition(Exception):
    """Raised when a record is asked to move backwards or out of a terminal state."""

    def __init__(self, record_id: str, current, requested):
        super().__init__(
            f"Record {record_id}: cannot move from {current.value} to {requested.value}"
        )
        self.current = current
        self.requested = requested
