"""Global pytest configuration."""

import os

# Keep tests off the developer's local state file and any .env settings
os.environ.setdefault("KDOC_STORAGE_BACKEND", "memory")
os.environ.setdefault("KDOC_STORE_BASE_URL", "http://store.test")
