"""Routing and rate-limiting policy models.

Attributes are snake_case; ``to_dict``/``from_dict`` translate to the
hyphenated wire names used by the management API. Optional fields left
as ``None`` are omitted from the payload rather than sent as null.
"""

from dataclasses import dataclass, field

ROUND_ROBIN = "round-robin"
FILL_FIRST = "fill-first"
STRATEGIES = (ROUND_ROBIN, FILL_FIRST)

DEFAULT_EXCEEDED_STATUS_CODE = 429


def _fallback(value) -> bool:
    # Anything but an explicit false keeps fallback on
    return value is not False


@dataclass
class PriorityPattern:
    pattern: str

    def to_dict(self) -> dict:
        return {"pattern": self.pattern}


@dataclass
class PriorityRule:
    models: list[str] = field(default_factory=list)  # empty = default rule
    order: list[PriorityPattern] = field(default_factory=list)
    fallback: bool = True

    @property
    def is_default(self) -> bool:
        return not self.models

    @classmethod
    def from_dict(cls, data: dict) -> "PriorityRule":
        return cls(
            models=list(data.get("models") or []),
            order=[PriorityPattern(pattern=o.get("pattern", "")) for o in data.get("order") or []],
            fallback=_fallback(data.get("fallback")),
        )

    def to_dict(self) -> dict:
        return {
            "models": list(self.models),
            "order": [o.to_dict() for o in self.order],
            "fallback": self.fallback,
        }


@dataclass
class AuthBinding:
    api_key: str
    auth_ids: list[str] = field(default_factory=list)
    fallback: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "AuthBinding":
        return cls(
            api_key=data.get("api-key") or "",
            auth_ids=list(data.get("auth-ids") or []),
            fallback=_fallback(data.get("fallback")),
        )

    def to_dict(self) -> dict:
        return {
            "api-key": self.api_key,
            "auth-ids": list(self.auth_ids),
            "fallback": self.fallback,
        }


@dataclass
class RoutingConfig:
    strategy: str = ROUND_ROBIN  # "round-robin" | "fill-first"
    priority: list[PriorityRule] = field(default_factory=list)
    bindings: list[AuthBinding] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "RoutingConfig":
        bindings = data.get("bindings")
        return cls(
            strategy=data.get("strategy") or ROUND_ROBIN,
            priority=[PriorityRule.from_dict(r) for r in data.get("priority") or []],
            bindings=[AuthBinding.from_dict(b) for b in bindings] if bindings is not None else None,
        )

    def to_dict(self) -> dict:
        body = {
            "strategy": self.strategy,
            "priority": [r.to_dict() for r in self.priority],
        }
        if self.bindings is not None:
            body["bindings"] = [b.to_dict() for b in self.bindings]
        return body


LIMIT_FIELDS = {
    "requests_per_day": "requests-per-day",
    "requests_per_month": "requests-per-month",
    "tokens_per_day": "tokens-per-day",
    "tokens_per_month": "tokens-per-month",
}


@dataclass
class ApiKeyLimits:
    # None or 0 = unlimited for that dimension
    requests_per_day: int | None = None
    requests_per_month: int | None = None
    tokens_per_day: int | None = None
    tokens_per_month: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ApiKeyLimits":
        return cls(**{attr: data.get(wire) for attr, wire in LIMIT_FIELDS.items()})

    def to_dict(self) -> dict:
        return {
            wire: getattr(self, attr)
            for attr, wire in LIMIT_FIELDS.items()
            if getattr(self, attr) is not None
        }


@dataclass
class ApiKeyConfig:
    key: str
    limits: ApiKeyLimits | None = None
    allowed_providers: list[str] | None = None
    auth_ids: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ApiKeyConfig":
        limits = data.get("limits")
        providers = data.get("allowed-providers")
        auth_ids = data.get("auth-ids")
        return cls(
            key=data.get("key") or "",
            limits=ApiKeyLimits.from_dict(limits) if limits is not None else None,
            allowed_providers=list(providers) if providers is not None else None,
            auth_ids=list(auth_ids) if auth_ids is not None else None,
        )

    def to_dict(self) -> dict:
        body: dict = {"key": self.key}
        if self.limits is not None:
            body["limits"] = self.limits.to_dict()
        if self.allowed_providers is not None:
            body["allowed-providers"] = list(self.allowed_providers)
        if self.auth_ids is not None:
            body["auth-ids"] = list(self.auth_ids)
        return body


@dataclass
class RateLimitingConfig:
    enabled: bool = True
    exceeded_status_code: int | None = None  # server default is 429
    persistence_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "RateLimitingConfig":
        return cls(
            enabled=bool(data.get("enabled", True)),
            exceeded_status_code=data.get("exceeded-status-code"),
            persistence_path=data.get("persistence-path"),
        )

    def to_dict(self) -> dict:
        body: dict = {"enabled": self.enabled}
        if self.exceeded_status_code is not None:
            body["exceeded-status-code"] = self.exceeded_status_code
        if self.persistence_path is not None:
            body["persistence-path"] = self.persistence_path
        return body


@dataclass
class ApiKeyUsage:
    requests_today: int = 0
    requests_month: int = 0
    tokens_today: int = 0
    tokens_month: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ApiKeyUsage":
        return cls(
            requests_today=data.get("requests_today", 0),
            requests_month=data.get("requests_month", 0),
            tokens_today=data.get("tokens_today", 0),
            tokens_month=data.get("tokens_month", 0),
        )


@dataclass
class MutationResult:
    ok: bool = True
    changed: list[str] = field(default_factory=list)
    index: int | None = None
    status: str = ""
    key: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "MutationResult":
        return cls(
            ok=data.get("ok", True) is not False,
            changed=list(data.get("changed") or []),
            index=data.get("index"),
            status=data.get("status") or "",
            key=data.get("key") or "",
        )


@dataclass
class UsageResetResult:
    ok: bool
    reset: str = ""
