"""Health check endpoint."""

from fastapi import APIRouter
import platform
import sys

from app.config import settings

router = APIRouter()

# Set by main.py during lifespan
_dispatcher = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


@router.get("/health")
async def health_check():
    """Service health, worker pool status, and system info."""
    return {
        "status": "healthy" if _dispatcher is not None else "starting",
        "storage_backend": settings.storage_backend,
        "workers": getattr(_dispatcher, "worker_count", 0),
        "queue_depth": _dispatcher.pending() if _dispatcher is not None else 0,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
