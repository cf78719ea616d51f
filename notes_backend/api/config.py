import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# JWT settings
SECRET_KEY = os.getenv("SECRET_KEY", "temporary_dev_secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30)))  # 30 days

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
SEED_DEMO_DATA = _env_flag("SEED_DEMO_DATA", True)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# IANA zone name for stats dates; empty means the server's local zone
STATS_TIMEZONE = os.getenv("STATS_TIMEZONE", "")


# PUBLIC_INTERFACE
def configure_logging(level=LOG_LEVEL):
    """Stream handler on the root logger, unless one is already installed."""
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
