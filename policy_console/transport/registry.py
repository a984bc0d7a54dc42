"""Transport registry — process-wide management API client and facades."""

from policy_console.transport.client import ApiClient
from policy_console.transport.rate_limits import RateLimitsApi
from policy_console.transport.routing import RoutingApi

_client: ApiClient | None = None


def get_api_client() -> ApiClient:
    """Get or create the shared management API client."""
    global _client
    if _client is None:
        _client = ApiClient()
    return _client


def get_routing_api() -> RoutingApi:
    return RoutingApi(get_api_client())


def get_rate_limits_api() -> RateLimitsApi:
    return RateLimitsApi(get_api_client())


async def close_api_client() -> None:
    """Gracefully shut down the management API connection."""
    global _client
    if _client is not None:
        await _client.close()
    _client = None
