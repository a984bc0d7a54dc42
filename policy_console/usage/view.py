"""Read-only projection of per-key usage counters against configured limits."""

from dataclasses import dataclass

from policy_console.policies.models import ApiKeyConfig, ApiKeyUsage

HIGH_THRESHOLD = 90
MEDIUM_THRESHOLD = 70


@dataclass
class UsageBar:
    label: str
    used: int
    limit: int
    percent: int
    tier: str  # "low" | "medium" | "high"


def usage_percent(used: int, limit: int | None) -> int:
    """Share of ``limit`` consumed, clamped to 0..100. Unlimited shows 0."""
    if not limit:
        return 0
    # Round half up in integer arithmetic: 12.5 shows as 13
    percent = (used * 200 + limit) // (limit * 2)
    return max(0, min(100, percent))


def usage_tier(percent: int) -> str:
    if percent >= HIGH_THRESHOLD:
        return "high"
    if percent >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def format_limit(value: int | None) -> str:
    if not value:
        return "Unlimited"
    return f"{value:,}"


def usage_bars(config: ApiKeyConfig, usage: ApiKeyUsage | None) -> list[UsageBar]:
    """Bars for the daily dimensions that have both a limit and a counter."""
    if usage is None or config.limits is None:
        return []

    bars = []
    for label, used, limit in (
        ("requests_day", usage.requests_today, config.limits.requests_per_day),
        ("tokens_day", usage.tokens_today, config.limits.tokens_per_day),
    ):
        if not limit:
            continue
        percent = usage_percent(used, limit)
        bars.append(UsageBar(label=label, used=used, limit=limit, percent=percent, tier=usage_tier(percent)))
    return bars
