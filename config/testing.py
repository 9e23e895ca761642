import os

SECRET_KEY = "test-secret"

API_CONFIG = {
    "base_url": os.getenv("API_BASE_URL", "http://backend.test"),
    "client": os.getenv("API_CLIENT", "100"),
    "user_id": os.getenv("API_USER_ID", "tester"),
    "language": "en",
    "timeout": 5,
    "test_mode": True,
}

DEFAULT_PERIOD_DAYS = 7
PREFERRED_LANGUAGES = ("en", "de")
TIMEZONE = ""

LOG_LEVEL = "WARNING"
DEBUG = False
TESTING = True
