import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

# Cache backend: "redis" in production, "memory" for local development and tests
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis").lower()
AVAILABILITY_CACHE_TTL = int(os.getenv("AVAILABILITY_CACHE_TTL", "30"))

# Role claim cookie - signed with HMAC-SHA256
DS_COOKIE_SECRET = os.getenv("DS_COOKIE_SECRET") or os.getenv("NEXT_COOKIE_SIGNING_KEY") or ""
if not DS_COOKIE_SECRET:
    import warnings

    warnings.warn(
        "DS_COOKIE_SECRET not set! Role claims will be unsigned - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
ROLE_COOKIE_NAME = os.getenv("ROLE_COOKIE_NAME", "ds_role")
ROLE_COOKIE_TTL_SECONDS = int(os.getenv("ROLE_COOKIE_TTL_SECONDS", "30"))

# Identity backend (authoritative user/session store)
IDENTITY_URL = os.getenv("IDENTITY_URL", "http://localhost:54321")
IDENTITY_API_KEY = os.getenv("IDENTITY_API_KEY", "")
IDENTITY_TIMEOUT_SECONDS = float(os.getenv("IDENTITY_TIMEOUT_SECONDS", "5"))
ACCESS_TOKEN_COOKIE_NAME = os.getenv("ACCESS_TOKEN_COOKIE_NAME", "sb-access-token")

# Facility clock - single local timezone, no multi-timezone support
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")
CLINIC_OPENING_TIME = os.getenv("CLINIC_OPENING_TIME", "09:00")
CLINIC_CLOSING_TIME = os.getenv("CLINIC_CLOSING_TIME", "18:00")
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "15"))
DEFAULT_SERVICE_DURATION = int(os.getenv("DEFAULT_SERVICE_DURATION", "50"))

# Auto-completion job
AUTO_COMPLETE_MAX_AGE_DAYS = int(os.getenv("AUTO_COMPLETE_MAX_AGE_DAYS", "60"))
