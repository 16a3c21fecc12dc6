"""Global pytest configuration."""

import os

# Tests run against the in-memory store unless a test wires its own engine
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
