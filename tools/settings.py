import os
from dataclasses import dataclass, field
from loguru import logger

GRAPH_API_VERSION = "v19.0"
GRAPH_API_BASE_URL = "https://graph.facebook.com"
HUBSPOT_API_BASE_URL = "https://api.hubapi.com"


@dataclass(frozen=True)
class RetryPolicy:
    """Delays and attempt budget for the contact lookup.

    HubSpot creates the contact for a Facebook lead a few seconds after the
    lead fires, so the pipeline waits ``pre_delay`` before starting and the
    contact search is retried ``max_attempts`` times, ``inter_attempt_delay``
    seconds apart.
    """
    max_attempts: int = 3
    inter_attempt_delay: float = 5.0
    pre_delay: float = 5.0


@dataclass(frozen=True)
class Settings:
    """Service configuration, loaded once at startup."""
    fb_access_token: str = ""
    hubspot_token: str = ""
    verify_token: str = ""
    app_secret: str = ""
    admin_token: str = ""
    port: int = 8000
    graph_api_version: str = GRAPH_API_VERSION
    graph_api_base_url: str = GRAPH_API_BASE_URL
    hubspot_api_base_url: str = HUBSPOT_API_BASE_URL
    http_timeout: float = 20.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    @property
    def graph_url(self) -> str:
        return f"{self.graph_api_base_url.rstrip('/')}/{self.graph_api_version}"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Missing credentials are allowed; the service starts and every call to
        the affected upstream fails instead.
        """
        settings = cls(
            fb_access_token=os.getenv("FB_ACCESS_TOKEN", ""),
            hubspot_token=os.getenv("HUBSPOT_TOKEN", ""),
            verify_token=os.getenv("FB_VERIFY_TOKEN", ""),
            app_secret=os.getenv("FB_APP_SECRET", ""),
            admin_token=os.getenv("ADMIN_TOKEN", ""),
            port=_env_int("PORT", 8000),
            graph_api_version=os.getenv("GRAPH_API_VERSION", GRAPH_API_VERSION),
            graph_api_base_url=os.getenv("GRAPH_API_BASE_URL", GRAPH_API_BASE_URL),
            hubspot_api_base_url=os.getenv("HUBSPOT_API_BASE_URL", HUBSPOT_API_BASE_URL),
            http_timeout=_env_float("HTTP_TIMEOUT_SECONDS", 20.0),
            retry=RetryPolicy(
                max_attempts=max(1, _env_int("CONTACT_SEARCH_ATTEMPTS", 3)),
                inter_attempt_delay=_env_float("CONTACT_SEARCH_DELAY_SECONDS", 5.0),
                pre_delay=_env_float("SYNC_PRE_DELAY_SECONDS", 5.0),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE", "logs/app.log"),
        )

        if not settings.fb_access_token:
            logger.warning("FB_ACCESS_TOKEN is not set, Facebook lookups will fail")
        if not settings.hubspot_token:
            logger.warning("HUBSPOT_TOKEN is not set, HubSpot calls will fail")
        if not settings.verify_token:
            logger.warning("FB_VERIFY_TOKEN is not set, webhook verification will be refused")

        return settings


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={value!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number for {name}={value!r}, using {default}")
        return default
