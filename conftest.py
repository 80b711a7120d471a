"""Global pytest configuration."""

import os

# Pin settings before any backend module reads them
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("REDIS_URL", None)
