"""
Configuration settings for the application
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

# Project base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Airtable configuration
AIRTABLE_API_URL = "https://api.airtable.com/v0"
CAMPS_TABLE = "Camps"
CATEGORIES_TABLE = "Categories"
FEEDBACK_TABLE = "Feedback"
ALLOWED_TABLES = (CAMPS_TABLE, CATEGORIES_TABLE)

# HTTP client configuration
REQUEST_TIMEOUT = 30.0  # seconds

# Retry configuration
MAX_RETRIES = 3
RETRY_BACKOFF = 1  # seconds

# Cache refresh configuration (0 disables the scheduled refresh)
CACHE_REFRESH_HOURS = int(os.environ.get("CACHE_REFRESH_HOURS", "6"))

# Database configuration
DEFAULT_DB_URL = "sqlite+aiosqlite:///" + str(BASE_DIR / "campfinder.db")

# API configuration
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))

# Auth configuration
ACCESS_TOKEN_COOKIE = "access_token"
OAUTH_PROVIDERS = ("google", "facebook")

# Logging configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
LOG_FILE = BASE_DIR / "logs" / "campfinder.log"

# Create logs directory if it doesn't exist
if not (BASE_DIR / "logs").exists():
    (BASE_DIR / "logs").mkdir(parents=True)

# Configure logger
logger.remove()  # Remove default handler
logger.add(LOG_FILE, rotation="10 MB", level=LOG_LEVEL, format=LOG_FORMAT)
logger.add(lambda msg: print(msg, end=""), level=LOG_LEVEL, format=LOG_FORMAT)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Credentials and endpoints resolved from the environment."""

    airtable_api_key: Optional[str] = None
    airtable_base_id: Optional[str] = None
    # When set, camp data is read through this site's /api/airtable proxy
    airtable_proxy_url: Optional[str] = None
    supabase_url: Optional[str] = None
    jwt_algorithms: List[str] = field(default_factory=lambda: ["ES256", "RS256"])
    jwt_audience: Optional[str] = None
    db_url: str = DEFAULT_DB_URL
    site_url: str = "http://localhost:8000"
    cache_refresh_hours: int = CACHE_REFRESH_HOURS

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            airtable_api_key=os.environ.get("AIRTABLE_API_KEY") or None,
            airtable_base_id=os.environ.get("AIRTABLE_BASE_ID") or None,
            airtable_proxy_url=os.environ.get("AIRTABLE_PROXY_URL") or None,
            supabase_url=os.environ.get("SUPABASE_URL") or None,
            jwt_algorithms=_split_csv(os.environ.get("SUPABASE_JWT_ALGORITHMS")) or ["ES256", "RS256"],
            jwt_audience=os.environ.get("SUPABASE_JWT_AUDIENCE") or None,
            db_url=os.environ.get("DB_URL") or DEFAULT_DB_URL,
            site_url=os.environ.get("SITE_URL", "http://localhost:8000"),
            cache_refresh_hours=CACHE_REFRESH_HOURS,
        )

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_api_key and self.airtable_base_id)
