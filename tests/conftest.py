"""Shared fixtures for the Policy Console test suite."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from policy_console.config.settings import get_settings
from policy_console.policies.models import (
    ApiKeyConfig,
    ApiKeyLimits,
    ApiKeyUsage,
    AuthBinding,
    MutationResult,
    PriorityPattern,
    PriorityRule,
    RateLimitingConfig,
    RoutingConfig,
)
from policy_console.session.session import CONNECTED, ConsoleSession
from policy_console.transport.rate_limits import RateLimitsApi
from policy_console.transport.routing import RoutingApi


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(MANAGEMENT_KEY="secret", REFETCH_AFTER_MUTATION="true")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


@pytest.fixture
def session() -> ConsoleSession:
    """A connected session with nothing in flight."""
    return ConsoleSession(connection_status=CONNECTED)


@pytest.fixture
def routing_config() -> RoutingConfig:
    """Two rules (specific then default) and three bindings."""
    return RoutingConfig(
        strategy="round-robin",
        priority=[
            PriorityRule(models=["claude-3"], order=[PriorityPattern("team-*")], fallback=False),
            PriorityRule(models=[], order=[PriorityPattern("*")], fallback=True),
        ],
        bindings=[
            AuthBinding(api_key="key-a", auth_ids=["auth-1"]),
            AuthBinding(api_key="key-b", auth_ids=["auth-2", "auth-3"], fallback=False),
            AuthBinding(api_key="key-c", auth_ids=["auth-4"]),
        ],
    )


@pytest.fixture
def routing_api(routing_config) -> AsyncMock:
    """RoutingApi stand-in whose mutations all succeed."""
    api = AsyncMock(spec=RoutingApi)
    api.get_config.return_value = routing_config
    for name in (
        "update_strategy", "add_priority_rule", "update_priority_rule", "delete_priority_rule",
        "add_binding", "update_binding", "delete_binding",
    ):
        getattr(api, name).return_value = MutationResult(ok=True)
    return api


@pytest.fixture
def api_key_configs() -> list[ApiKeyConfig]:
    return [
        ApiKeyConfig(
            key="team-alpha",
            limits=ApiKeyLimits(requests_per_day=500, tokens_per_day=100_000),
            allowed_providers=["claude"],
        ),
        ApiKeyConfig(key="team-beta"),
    ]


@pytest.fixture
def rate_limits_api(api_key_configs) -> AsyncMock:
    """RateLimitsApi stand-in whose mutations all succeed."""
    api = AsyncMock(spec=RateLimitsApi)
    api.get_configs.return_value = api_key_configs
    api.get_rate_limiting.return_value = RateLimitingConfig(
        enabled=True, exceeded_status_code=503, persistence_path="/var/lib/limits.json"
    )
    api.get_all_usage.return_value = {
        "team-alpha": ApiKeyUsage(requests_today=450, tokens_today=20_000),
    }
    for name in ("add_config", "update_config", "delete_config", "update_rate_limiting"):
        getattr(api, name).return_value = MutationResult(ok=True)
    api.reset_usage.return_value = MagicMock(ok=True, reset="team-alpha")
    return api


def make_response(status_code: int = 200, body=None) -> MagicMock:
    """Build a fake httpx response with a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    return response
