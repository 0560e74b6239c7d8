"""Test-wide configuration applied before the application is imported."""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="director_auth_tests_")

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", os.path.join(_TEST_DIR, "logs"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/default.sqlite")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
