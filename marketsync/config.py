"""
Marketplace sync configuration read from environment variables.

A local .env file is honored through python-dotenv.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Process-wide settings. Per-connection settings live on the connection."""

    # Persistence
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Outbound HTTP
    API_TIMEOUT: int = int(os.getenv("API_TIMEOUT", "30"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE: str = os.getenv("LOG_FILE", "")

    # AI mapping suggestions
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    AI_MODEL: str = os.getenv("AI_MODEL", "claude-3-5-sonnet-20241022")
    AI_MAX_TOKENS: int = int(os.getenv("AI_MAX_TOKENS", "2000"))

    # Platform defaults
    ETSY_API_KEY: str = os.getenv("ETSY_API_KEY", "")
    EBAY_SANDBOX: bool = _env_bool("EBAY_SANDBOX")
    SHOPIFY_API_VERSION: str = os.getenv("SHOPIFY_API_VERSION", "2024-01")
    BIGCOMMERCE_API_VERSION: str = os.getenv("BIGCOMMERCE_API_VERSION", "v3")

    # Background jobs
    JOB_MAX_JOBS: int = int(os.getenv("JOB_MAX_JOBS", "100"))
    JOB_TTL_HOURS: int = int(os.getenv("JOB_TTL_HOURS", "24"))

    @classmethod
    def validate(cls, require_database: bool = False) -> None:
        """
        Validate required configuration on startup.

        Args:
            require_database: True when the PostgreSQL store will be used

        Raises:
            ValueError: If required variables are missing
        """
        required = []
        if require_database:
            required.append("DATABASE_URL")

        missing = [key for key in required if not getattr(cls, key)]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
