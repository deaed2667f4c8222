"""Test environment: in-memory SQLite and a throwaway upload root, set before the app is imported."""

import os
import tempfile

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="resonansi-test-uploads-"))
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
