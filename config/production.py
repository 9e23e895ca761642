import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

API_CONFIG = {
    "base_url": os.getenv("API_BASE_URL", "https://localhost"),
    "client": os.getenv("API_CLIENT", ""),
    "user_id": os.getenv("API_USER_ID", ""),
    "language": os.getenv("API_LANGUAGE", "en"),
    "timeout": float(os.getenv("API_TIMEOUT", "30")),
    "test_mode": bool(int(os.getenv("API_TEST_MODE", "0"))),
}

DEFAULT_PERIOD_DAYS = int(os.getenv("DEFAULT_PERIOD_DAYS", "7"))
PREFERRED_LANGUAGES = tuple(os.getenv("PREFERRED_LANGUAGES", "en,de").split(","))
TIMEZONE = os.getenv("TIMEZONE", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = False
