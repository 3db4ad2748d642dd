import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
notifications_ms_url = os.environ.get(
    "NOTIFICATIONS_MS_URL", "http://localhost:8005"
)
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
SLOTS_TTL = int(os.environ.get("SLOTS_TTL", "60"))
MAX_RANGE_DAYS = int(os.environ.get("MAX_RANGE_DAYS", "90"))
DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "PLN")
GENERATE_SCHEMAS = os.environ.get("GENERATE_SCHEMAS", "1") == "1"
