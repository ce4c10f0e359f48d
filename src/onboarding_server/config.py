"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  Session and
resume-window lengths live in ``onboarding_flow.config``; this module only
covers the HTTP side (network, CORS, admin key, cookie transport).
"""

import os
from dataclasses import dataclass, field

# Module-level so the admin cleanup Query() default can reference it
DEFAULT_CLEANUP_GRACE_DAYS = int(os.getenv("DEFAULT_CLEANUP_GRACE_DAYS", "0"))


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins; credentials are allowed so the
    # session cookie travels, which rules out "*" in browsers
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    # Logging
    log_level: str = "INFO"

    # Admin API key: shared secret for admin endpoints (None = disabled)
    admin_api_key: str | None = None

    # Session cookie transport
    cookie_name: str = "OD_SESS"
    cookie_secure: bool = True


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` / ``ONBOARDING_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "http://localhost:3000")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        cookie_name=os.getenv("ONBOARDING_SESSION_COOKIE_NAME", "OD_SESS"),
        cookie_secure=_env_flag("ONBOARDING_SESSION_COOKIE_SECURE", True),
    )
