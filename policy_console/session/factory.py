"""Process-wide operator session and the screens bound to it."""

from policy_console.screens.rate_limits import RateLimitsScreen
from policy_console.screens.routing import RoutingScreen
from policy_console.session.session import ConsoleSession
from policy_console.transport.registry import get_rate_limits_api, get_routing_api

_session: ConsoleSession | None = None
_routing_screen: RoutingScreen | None = None
_rate_limits_screen: RateLimitsScreen | None = None


def get_session() -> ConsoleSession:
    global _session
    if _session is None:
        _session = ConsoleSession()
    return _session


def get_routing_screen() -> RoutingScreen:
    global _routing_screen
    if _routing_screen is None:
        _routing_screen = RoutingScreen(get_session(), get_routing_api())
    return _routing_screen


def get_rate_limits_screen() -> RateLimitsScreen:
    global _rate_limits_screen
    if _rate_limits_screen is None:
        _rate_limits_screen = RateLimitsScreen(get_session(), get_rate_limits_api())
    return _rate_limits_screen


def reset_console() -> None:
    """Drop the session and screens; the next access starts fresh."""
    global _session, _routing_screen, _rate_limits_screen
    _session = None
    _routing_screen = None
    _rate_limits_screen = None
