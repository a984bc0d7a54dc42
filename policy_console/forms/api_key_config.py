"""Per-API-key rate limit config form.

Limit fields are free text. A blank field is left out of the submitted
``limits`` object entirely, and ``limits`` itself is left out when every
field is blank, so the server sees "not configured" as absence rather
than as zero.
"""

import re

from policy_console.editors.tag_list import TagList
from policy_console.errors import FormValidationError
from policy_console.policies.models import LIMIT_FIELDS, ApiKeyConfig, ApiKeyLimits

PROVIDER_OPTIONS = ("gemini", "claude", "codex", "openai")

_DIGITS = re.compile(r"[0-9]+")


def _limit_text(limits: ApiKeyLimits | None, attr: str) -> str:
    value = getattr(limits, attr) if limits else None
    # 0 and missing both mean unlimited and show as an empty field
    return str(value) if value else ""


def _parse_limit(label: str, text: str) -> int | None:
    text = text.strip()
    if not text:
        return None
    if text.startswith("-") and _DIGITS.fullmatch(text[1:]):
        raise FormValidationError(f"{label} must not be negative")
    if not _DIGITS.fullmatch(text):
        raise FormValidationError(f"{label} must be a whole number")
    return int(text)


class ApiKeyConfigForm:
    """Draft of one API key config; the key is locked while editing."""

    def __init__(self, config: ApiKeyConfig | None = None):
        self.editing_key = config.key if config else None
        self.key = config.key if config else ""
        limits = config.limits if config else None
        self.requests_per_day = _limit_text(limits, "requests_per_day")
        self.requests_per_month = _limit_text(limits, "requests_per_month")
        self.tokens_per_day = _limit_text(limits, "tokens_per_day")
        self.tokens_per_month = _limit_text(limits, "tokens_per_month")
        self.allowed_providers = TagList(config.allowed_providers if config else [])
        self.auth_ids = TagList(config.auth_ids if config else [])

    @property
    def is_editing(self) -> bool:
        return self.editing_key is not None

    @property
    def key_locked(self) -> bool:
        return self.is_editing

    def set_key(self, value: str) -> bool:
        if self.key_locked:
            return False
        self.key = value
        return True

    def provider_suggestions(self) -> list[str]:
        return self.allowed_providers.suggestions(PROVIDER_OPTIONS)

    def submit(self) -> ApiKeyConfig:
        self.allowed_providers.flush()
        self.auth_ids.flush()

        key = self.key.strip()
        if not key:
            raise FormValidationError("API key is required")

        parsed = {
            attr: _parse_limit(wire, getattr(self, attr))
            for attr, wire in LIMIT_FIELDS.items()
        }
        limits = ApiKeyLimits(**parsed) if any(v is not None for v in parsed.values()) else None

        return ApiKeyConfig(
            key=key,
            limits=limits,
            allowed_providers=self.allowed_providers.items or None,
            auth_ids=self.auth_ids.items or None,
        )
