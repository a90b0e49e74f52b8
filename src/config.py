import os

from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
DEBUG = os.getenv("DEBUG", "1" if ENVIRONMENT == "dev" else "0") == "1"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", 8000))
APP_DOMAIN = os.getenv("APP_DOMAIN", "localhost:8000")
SHORT_URL_BASE = os.getenv("SHORT_URL_BASE", f"https://{APP_DOMAIN}").rstrip("/")

DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "minilink")
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASS = os.getenv("DB_PASS", "postgres")
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
CREATE_TABLES = os.getenv("CREATE_TABLES", "1") == "1"

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD") or None
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", 60))

SECRET = os.getenv("SECRET", "change-me")
JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS", 3600))

# Code generation budgets
MAX_GENERATION_ATTEMPTS = int(os.getenv("MAX_GENERATION_ATTEMPTS", 10))
BULK_MAX_GENERATION_ATTEMPTS = int(os.getenv("BULK_MAX_GENERATION_ATTEMPTS", 5))
BULK_MAX_URLS = int(os.getenv("BULK_MAX_URLS", 50))

EXPIRED_LINK_RETENTION_HOURS = int(os.getenv("EXPIRED_LINK_RETENTION_HOURS", 720))
