"""Rate-limiting endpoints: per-key configs, global settings, usage."""

from urllib.parse import quote

from policy_console.policies.models import (
    ApiKeyConfig,
    ApiKeyUsage,
    MutationResult,
    RateLimitingConfig,
    UsageResetResult,
)
from policy_console.transport.client import ApiClient


def _escape(key: str) -> str:
    # Keys may contain '/', '?', '#' etc.; encode every reserved character
    return quote(key, safe="")


class RateLimitsApi:
    """Typed calls for API key configs, ``/rate-limiting`` and usage."""

    def __init__(self, client: ApiClient):
        self._client = client

    # API key configs

    async def get_configs(self) -> list[ApiKeyConfig]:
        data = await self._client.get("/api-key-configs")
        return [ApiKeyConfig.from_dict(c) for c in data.get("api_key_configs") or []]

    async def add_config(self, config: ApiKeyConfig) -> MutationResult:
        return MutationResult.from_dict(await self._client.post("/api-key-configs", config.to_dict()))

    async def get_config(self, key: str) -> ApiKeyConfig:
        return ApiKeyConfig.from_dict(await self._client.get(f"/api-key-configs/{_escape(key)}"))

    async def update_config(self, key: str, config: ApiKeyConfig) -> MutationResult:
        data = await self._client.put(f"/api-key-configs/{_escape(key)}", config.to_dict())
        return MutationResult.from_dict(data)

    async def delete_config(self, key: str) -> MutationResult:
        return MutationResult.from_dict(await self._client.delete(f"/api-key-configs/{_escape(key)}"))

    # Global settings

    async def get_rate_limiting(self) -> RateLimitingConfig:
        return RateLimitingConfig.from_dict(await self._client.get("/rate-limiting"))

    async def update_rate_limiting(self, config: RateLimitingConfig) -> MutationResult:
        return MutationResult.from_dict(await self._client.put("/rate-limiting", config.to_dict()))

    # Usage

    async def get_all_usage(self) -> dict[str, ApiKeyUsage]:
        data = await self._client.get("/rate-limits/usage")
        return {key: ApiKeyUsage.from_dict(u) for key, u in (data.get("usage") or {}).items()}

    async def get_usage(self, key: str) -> ApiKeyUsage:
        return ApiKeyUsage.from_dict(await self._client.get(f"/rate-limits/usage/{_escape(key)}"))

    async def reset_usage(self, key: str) -> UsageResetResult:
        data = await self._client.delete(f"/rate-limits/usage/{_escape(key)}")
        return UsageResetResult(ok=data.get("ok", True) is not False, reset=data.get("reset") or key)
