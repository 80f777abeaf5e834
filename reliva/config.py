import os
from urllib.parse import urlsplit

from dotenv import load_dotenv


load_dotenv()


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///reliva.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Credentialed CORS cannot use a wildcard origin.
    # Web frontend, then the server's own origin.
    _default_cors_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]
    _cors_origins_raw = os.getenv("CORS_ALLOWED_ORIGINS", "").strip()
    if _cors_origins_raw:
        CORS_ALLOWED_ORIGINS = [
            item.strip() for item in _cors_origins_raw.split(",")
            if item.strip() and item.strip() != "*"
        ] + _default_cors_origins
    else:
        CORS_ALLOWED_ORIGINS = _default_cors_origins

    FEED_PAGE_LIMIT = int(os.getenv("FEED_PAGE_LIMIT", "10"))
    FEED_MAX_LIMIT = int(os.getenv("FEED_MAX_LIMIT", "50"))

    # Client side of the reviews feed.
    API_BASE = os.getenv("API_BASE", "http://localhost:8080/api").rstrip("/")
    WS_BASE = os.getenv("WS_BASE", "http://localhost:8080")
    WS_CONNECT_TIMEOUT = float(os.getenv("WS_CONNECT_TIMEOUT", "5"))
    WS_DEBUG = _env_bool("WS_DEBUG", False)
    API_CONNECT_TIMEOUT = float(os.getenv("API_CONNECT_TIMEOUT", "5"))
    API_READ_TIMEOUT = float(os.getenv("API_READ_TIMEOUT", "20"))
    API_POOL_MAXSIZE = int(os.getenv("API_POOL_MAXSIZE", "8"))

    SESSION_CACHE_KEY = os.getenv("SESSION_CACHE_KEY", "reliva_posts")
    SESSION_CACHE_TTL = int(os.getenv("SESSION_CACHE_TTL", str(60 * 60)))
    REDIS_URL = os.getenv("REDIS_URL", "").strip()
