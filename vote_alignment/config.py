"""
Configuration for the vote alignment sync service.

Values come from environment variables (optionally a .env file).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from vote_alignment.lib.exceptions import ConfigurationError

load_dotenv()

DEFAULT_API_BASE = "https://dadosabertos.camara.leg.br/api/v2"
DEFAULT_BULK_BASE = "https://dadosabertos.camara.leg.br/arquivos"


@dataclass
class SupabaseConfig:
    """Supabase database configuration.

    Attributes:
        url: Supabase project URL (from SUPABASE_URL env var)
        service_role_key: Service role key used for upserts

    Required environment variables:
        - SUPABASE_URL
        - SUPABASE_SERVICE_ROLE_KEY or SUPABASE_SERVICE_KEY
    """

    url: str
    service_role_key: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.service_role_key)

    @classmethod
    def from_env(cls, require_credentials: bool = False) -> "SupabaseConfig":
        """Load configuration from environment variables.

        Raises:
            ConfigurationError: When credentials are missing and
                require_credentials is True
        """
        url = os.getenv("SUPABASE_URL", "")
        service_role_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv(
            "SUPABASE_SERVICE_KEY"
        )

        if require_credentials:
            missing = []
            if not url:
                missing.append("SUPABASE_URL")
            if not service_role_key:
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
            if missing:
                raise ConfigurationError(
                    f"Missing required environment variables: {', '.join(missing)}"
                )

        return cls(url=url, service_role_key=service_role_key)


@dataclass
class SyncConfig:
    """Sync pipeline tuning.

    Attributes:
        api_base: Chamber open-data REST base URL (rosters)
        bulk_base: Chamber static bulk file base URL (orientations)
        request_delay: Seconds slept after every roster fetch attempt
        rate_limit_backoff: Seconds waited before the single retry on HTTP 429
        upsert_chunk_size: Rows per upsert statement
        default_batch_size: Vote events per invocation when the caller omits it
        http_timeout: Per-request timeout in seconds
    """

    api_base: str = DEFAULT_API_BASE
    bulk_base: str = DEFAULT_BULK_BASE
    request_delay: float = 0.35
    rate_limit_backoff: float = 3.0
    upsert_chunk_size: int = 200
    default_batch_size: int = 30
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Load sync settings, falling back to defaults for unset variables."""
        try:
            return cls(
                api_base=os.getenv("CAMARA_API_BASE", DEFAULT_API_BASE).rstrip("/"),
                bulk_base=os.getenv("CAMARA_BULK_BASE", DEFAULT_BULK_BASE).rstrip("/"),
                request_delay=float(os.getenv("SYNC_REQUEST_DELAY", "0.35")),
                rate_limit_backoff=float(os.getenv("SYNC_RATE_LIMIT_BACKOFF", "3.0")),
                upsert_chunk_size=int(os.getenv("SYNC_UPSERT_CHUNK_SIZE", "200")),
                default_batch_size=int(os.getenv("SYNC_DEFAULT_BATCH_SIZE", "30")),
                http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid sync configuration value: {e}") from e
