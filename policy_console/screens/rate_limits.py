"""Rate limits screen: global settings, per-key configs and usage."""

import asyncio
from dataclasses import dataclass, field

from policy_console.errors import ConsoleError, FormValidationError
from policy_console.forms.api_key_config import ApiKeyConfigForm
from policy_console.forms.global_settings import GlobalSettingsForm
from policy_console.logging.audit import get_audit_logger, log_action
from policy_console.policies.models import ApiKeyConfig, ApiKeyUsage, RateLimitingConfig
from policy_console.reconcile import lists
from policy_console.session.session import ConsoleSession
from policy_console.transport.rate_limits import RateLimitsApi
from policy_console.usage.view import UsageBar, format_limit, usage_bars


def _key_of(config: ApiKeyConfig) -> str:
    return config.key


@dataclass
class ConfigRow:
    key: str
    limits: dict[str, str]  # dimension -> formatted limit
    allowed_providers: list[str] = field(default_factory=list)
    auth_ids: list[str] = field(default_factory=list)
    usage: list[UsageBar] = field(default_factory=list)
    can_reset_usage: bool = False


class RateLimitsScreen:

    def __init__(self, session: ConsoleSession, api: RateLimitsApi):
        self.session = session
        self.api = api
        self.configs: list[ApiKeyConfig] = []
        self.rate_limiting = RateLimitingConfig(enabled=True)
        self.usage: dict[str, ApiKeyUsage] = {}
        self.settings_form = GlobalSettingsForm(self.rate_limiting)
        self.loading = False
        self.loaded = False

    async def load(self) -> bool:
        """Fetch configs, global settings and usage concurrently.

        Each slice that fails is replaced by its empty default, so a
        partially reachable service still renders.
        """
        self.loading = True
        try:
            configs, rate_limiting, usage = await asyncio.gather(
                _or_default(self.api.get_configs(), [], "api key configs"),
                _or_default(self.api.get_rate_limiting(), RateLimitingConfig(enabled=True), "rate limiting"),
                _or_default(self.api.get_all_usage(), {}, "usage"),
            )
        finally:
            self.loading = False

        self.configs = configs
        self.rate_limiting = rate_limiting
        self.settings_form.reset(rate_limiting)
        self.usage = usage
        self.loaded = True
        return True

    refresh = load

    # Global settings

    async def toggle_enabled(self) -> bool:
        """Flip ``enabled`` immediately, keeping the last saved status code and path."""
        if self.settings_form.has_unsaved_changes:
            get_audit_logger().warning(
                "Toggling rate limiting with unsaved settings; draft is not sent",
                extra={"audit_data": {
                    "draft_status_code": self.settings_form.exceeded_status_code,
                    "draft_persistence_path": self.settings_form.persistence_path,
                }},
            )

        current = self.rate_limiting
        updated = RateLimitingConfig(
            enabled=not current.enabled,
            exceeded_status_code=current.exceeded_status_code,
            persistence_path=current.persistence_path,
        )
        try:
            async with self.session.mutation():
                await self.api.update_rate_limiting(updated)
        except ConsoleError as e:
            return self._failed("Update failed", e)

        self.rate_limiting = updated
        return self._succeeded("Rate limit settings updated", enabled=updated.enabled)

    async def save_global_settings(self) -> bool:
        updated = self.settings_form.build(enabled=self.rate_limiting.enabled)
        try:
            async with self.session.mutation():
                await self.api.update_rate_limiting(updated)
        except ConsoleError as e:
            return self._failed("Update failed", e)

        self.rate_limiting = updated
        self.settings_form.reset(updated)
        return self._succeeded(
            "Rate limit settings updated",
            exceeded_status_code=updated.exceeded_status_code,
            persistence_path=updated.persistence_path,
        )

    # API key configs

    def new_config_form(self) -> ApiKeyConfigForm:
        return ApiKeyConfigForm()

    def edit_config_form(self, key: str) -> ApiKeyConfigForm:
        for config in self.configs:
            if config.key == key:
                return ApiKeyConfigForm(config)
        raise KeyError(key)

    async def save_config(self, form: ApiKeyConfigForm) -> bool:
        try:
            config = form.submit()
        except FormValidationError as e:
            log_action("Rate limits draft rejected", outcome="rejected", error=e.message)
            self.session.notify(e.message, "error")
            return False

        try:
            async with self.session.mutation():
                if form.is_editing:
                    await self.api.update_config(form.editing_key, config)
                    self.configs = lists.replace_by_key(self.configs, form.editing_key, config, _key_of)
                else:
                    await self.api.add_config(config)
                    self.configs = lists.append(self.configs, config)
        except ConsoleError as e:
            return self._failed("Update failed", e)

        if form.is_editing:
            return self._succeeded("API key config updated", key=config.key)
        return self._succeeded("API key config added", key=config.key)

    async def delete_config(self, key: str) -> bool:
        try:
            async with self.session.mutation():
                await self.api.delete_config(key)
                self.configs = lists.remove_by_key(self.configs, key, _key_of)
        except ConsoleError as e:
            return self._failed("Delete failed", e)
        return self._succeeded("API key config deleted", key=key)

    # Usage

    async def reset_usage(self, key: str) -> bool:
        """Clear the counters for ``key``; its configured limits are untouched."""
        try:
            async with self.session.mutation():
                await self.api.reset_usage(key)
                self.usage = lists.remove_entry(self.usage, key)
        except ConsoleError as e:
            return self._failed("Update failed", e)
        return self._succeeded("Usage reset", key=key)

    def config_rows(self) -> list[ConfigRow]:
        rows = []
        for config in self.configs:
            limits = config.limits
            key_usage = self.usage.get(config.key)
            rows.append(ConfigRow(
                key=config.key,
                limits={
                    "requests_day": format_limit(limits.requests_per_day if limits else None),
                    "requests_month": format_limit(limits.requests_per_month if limits else None),
                    "tokens_day": format_limit(limits.tokens_per_day if limits else None),
                    "tokens_month": format_limit(limits.tokens_per_month if limits else None),
                },
                allowed_providers=list(config.allowed_providers or []),
                auth_ids=list(config.auth_ids or []),
                usage=usage_bars(config, key_usage),
                can_reset_usage=key_usage is not None,
            ))
        return rows

    # Notifications

    def _succeeded(self, message: str, **audit_data) -> bool:
        log_action(message, **audit_data)
        self.session.notify(message, "success")
        return True

    def _failed(self, prefix: str, error: ConsoleError) -> bool:
        log_action(f"Rate limits {prefix.lower()}", outcome="failed", error=error.message)
        self.session.notify(f"{prefix}: {error.message}", "error")
        return False


async def _or_default(call, default, name: str):
    try:
        return await call
    except ConsoleError as e:
        get_audit_logger().warning(
            f"Loading {name} failed, using empty default",
            extra={"audit_data": {"error": e.message}},
        )
        return default
