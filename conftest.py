import os

# Settings are cached on first import, so the test environment must be in
# place before anything under libs/ or services/ is loaded.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["PUSH_SERVICE_URL"] = "http://push.test"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"

from libs.common.config import get_settings  # noqa: E402

get_settings.cache_clear()
