"""Global rate-limiting settings form (status code and persistence path).

The enabled switch is not part of this draft: it commits on its own
and always uses the last loaded or saved values for the other fields.
"""

import re

from policy_console.policies.models import DEFAULT_EXCEEDED_STATUS_CODE, RateLimitingConfig

_DIGITS = re.compile(r"[0-9]+")


def parse_status_code(text: str) -> int:
    """Integer status code; blank, zero or anything but plain digits yields 429."""
    text = text.strip()
    if not _DIGITS.fullmatch(text):
        return DEFAULT_EXCEEDED_STATUS_CODE
    return int(text) or DEFAULT_EXCEEDED_STATUS_CODE


class GlobalSettingsForm:

    def __init__(self, current: RateLimitingConfig):
        self.reset(current)

    def reset(self, current: RateLimitingConfig) -> None:
        """Re-seed the draft from the last loaded or saved config."""
        self._baseline = current
        self.exceeded_status_code = str(current.exceeded_status_code or DEFAULT_EXCEEDED_STATUS_CODE)
        self.persistence_path = current.persistence_path or ""

    @property
    def has_unsaved_changes(self) -> bool:
        saved = self._baseline
        return (
            parse_status_code(self.exceeded_status_code)
            != (saved.exceeded_status_code or DEFAULT_EXCEEDED_STATUS_CODE)
            or (self.persistence_path.strip() or None) != (saved.persistence_path or None)
        )

    def build(self, enabled: bool) -> RateLimitingConfig:
        return RateLimitingConfig(
            enabled=enabled,
            exceeded_status_code=parse_status_code(self.exceeded_status_code),
            persistence_path=self.persistence_path.strip() or None,
        )
