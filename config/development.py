import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

API_CONFIG = {
    "base_url": os.getenv("API_BASE_URL", "http://localhost:8080"),
    "client": os.getenv("API_CLIENT", "100"),
    "user_id": os.getenv("API_USER_ID", "dev"),
    "language": os.getenv("API_LANGUAGE", "en"),
    "timeout": float(os.getenv("API_TIMEOUT", "30")),
    "test_mode": bool(int(os.getenv("API_TEST_MODE", "1"))),
}

# Default timesheet period when the timesheet type does not define one
DEFAULT_PERIOD_DAYS = int(os.getenv("DEFAULT_PERIOD_DAYS", "7"))
PREFERRED_LANGUAGES = tuple(os.getenv("PREFERRED_LANGUAGES", "en,de").split(","))
TIMEZONE = os.getenv("TIMEZONE", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
DEBUG = True
