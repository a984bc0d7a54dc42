"""Auth binding form."""

from policy_console.editors.tag_list import TagList
from policy_console.errors import FormValidationError
from policy_console.policies.models import AuthBinding


class BindingForm:
    """Draft of one API-key-to-auth-ids binding.

    The api-key identifies the binding and is locked while editing.
    """

    def __init__(self, binding: AuthBinding | None = None, index: int | None = None):
        self.editing_index = index
        self.api_key = binding.api_key if binding else ""
        self.auth_ids = TagList(binding.auth_ids if binding else [])
        self.fallback = binding.fallback if binding else True

    @property
    def is_editing(self) -> bool:
        return self.editing_index is not None

    @property
    def key_locked(self) -> bool:
        return self.is_editing

    def set_api_key(self, value: str) -> bool:
        if self.key_locked:
            return False
        self.api_key = value
        return True

    def toggle_fallback(self) -> None:
        self.fallback = not self.fallback

    def submit(self) -> AuthBinding:
        self.auth_ids.flush()
        api_key = self.api_key.strip()
        if not api_key:
            raise FormValidationError("API key is required")
        if not len(self.auth_ids):
            raise FormValidationError("At least one auth ID is required")
        return AuthBinding(api_key=api_key, auth_ids=self.auth_ids.items, fallback=self.fallback)
