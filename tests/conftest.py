import os
import tempfile

# Settings are read once at import of app.config; pin a local, deterministic setup.
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["AUTH_MODE"] = "dev"
os.environ["AI_API_KEY"] = ""
os.environ["AI_API_BASE_URL"] = ""
os.environ["SENTRY_DSN"] = ""
os.environ["WORKER_COUNT"] = "2"
os.environ.setdefault("ARTIFACTS_DIR", tempfile.mkdtemp(prefix="placed-test-artifacts-"))
