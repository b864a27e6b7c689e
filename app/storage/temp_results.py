"""Per-job artifact storage (rendered PDFs) with TTL-based cleanup."""

import logging
import os
import shutil
import time
from typing import Optional

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Files written by render jobs, one directory per job id."""

    def __init__(self, base_dir: str, ttl_hours: int = 72):
        self._base_dir = base_dir
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def get_job_dir(self, job_id: str) -> str:
        """Get or create directory for a job's output files."""
        job_dir = os.path.join(self._base_dir, job_id)
        os.makedirs(job_dir, exist_ok=True)
        return job_dir

    def get_output_path(self, job_id: str, filename: str) -> str:
        return os.path.join(self.get_job_dir(job_id), filename)

    def find(self, job_id: str, filename: str) -> Optional[str]:
        """Path of an existing artifact, or None. Rejects names that escape the job dir."""
        if os.path.basename(filename) != filename or filename in ("", ".", ".."):
            return None
        path = os.path.join(self._base_dir, job_id, filename)
        return path if os.path.isfile(path) else None

    def cleanup_expired(self) -> int:
        """Remove job directories older than TTL. Returns count of removed dirs."""
        now = time.time()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for entry in os.listdir(self._base_dir):
            job_dir = os.path.join(self._base_dir, entry)
            if not os.path.isdir(job_dir):
                continue
            if now - os.path.getmtime(job_dir) > self._ttl_seconds:
                shutil.rmtree(job_dir, ignore_errors=True)
                removed += 1
        if removed:
            logger.info("Removed %d expired artifact dir(s)", removed)
        return removed
