import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL")

# "production" disables development-only guards (leak assertions, HSTS off otherwise)
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

# Session tokens are issued by the auth provider and verified here
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Members of this email domain see collective-tier content
INTERNAL_EMAIL_DOMAIN = os.getenv("INTERNAL_EMAIL_DOMAIN", "windedvertigo.com").lower()

# Redis (optional) - candidate cache is disabled when unset
REDIS_URL = os.getenv("REDIS_URL")

# Matcher
CANDIDATE_CACHE_TTL = int(os.getenv("CANDIDATE_CACHE_TTL", "300"))  # seconds
MATCHER_MAX_RESULTS = int(os.getenv("MATCHER_MAX_RESULTS", "50"))

# Frontend base URL used for CORS defaults
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},https://creaseworks.app").split(",")

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


def is_production() -> bool:
    return ENVIRONMENT == "production"
