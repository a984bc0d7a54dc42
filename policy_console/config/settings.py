"""Console settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Management API of the routing / rate-limiting control plane
    management_base_url: str = "http://localhost:8317/v0/management"
    management_key: str = ""  # sent as Bearer token; empty = no auth header
    request_timeout: float = 30.0
    connect_timeout: float = 10.0

    # Console authentication
    # Comma-separated list of operator keys accepted by the console app
    console_api_keys: str = "dev-key-1"

    # Re-fetch rule/binding lists after each index-addressed mutation
    # instead of patching the local copy
    refetch_after_mutation: bool = False

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated operator keys into a list."""
        return [k.strip() for k in self.console_api_keys.split(",") if k.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
