"""Routing screen: strategy, priority rules and auth bindings.

Flow for every action: form validates -> RoutingApi call -> on success
the local list is reconciled and a success notification is raised; on
any ConsoleError the local state stays as it was and the failure is
surfaced as a notification.
"""

from dataclasses import dataclass

from policy_console.config.settings import get_settings
from policy_console.errors import ConsoleError, FormValidationError
from policy_console.forms.binding import BindingForm
from policy_console.forms.rule import RuleForm
from policy_console.logging.audit import get_audit_logger, log_action
from policy_console.policies.models import ROUND_ROBIN, STRATEGIES, AuthBinding, PriorityRule
from policy_console.reconcile import lists
from policy_console.session.session import ConsoleSession
from policy_console.transport.routing import RoutingApi

DEFAULT_RULE_LABEL = "default"


@dataclass
class RuleRow:
    index: int
    label: str
    models: list[str]
    order: list[str]
    fallback: bool


@dataclass
class BindingRow:
    index: int
    api_key: str
    auth_ids: list[str]
    fallback: bool


class RoutingScreen:

    def __init__(self, session: ConsoleSession, api: RoutingApi):
        self.session = session
        self.api = api
        self.strategy = ROUND_ROBIN
        self.rules: list[PriorityRule] = []
        self.bindings: list[AuthBinding] = []
        self.loading = False
        self.loaded = False
        self.error = ""

    async def load(self) -> bool:
        """Fetch the full routing config. Failure is a page-level error."""
        self.loading = True
        self.error = ""
        try:
            config = await self.api.get_config()
        except ConsoleError as e:
            self.error = e.message or "Failed to refresh"
            get_audit_logger().warning("Routing load failed", extra={"audit_data": {"error": self.error}})
            return False
        finally:
            self.loading = False

        self.strategy = config.strategy or ROUND_ROBIN
        self.rules = config.priority or []
        self.bindings = config.bindings or []
        self.loaded = True
        return True

    refresh = load

    # Strategy

    async def change_strategy(self, strategy: str) -> bool:
        if strategy == self.strategy:
            return True
        if strategy not in STRATEGIES:
            self.session.notify(f"Unknown strategy: {strategy}", "error")
            return False

        try:
            async with self.session.mutation():
                await self.api.update_strategy(strategy)
        except ConsoleError as e:
            return self._failed("Update failed", e)

        self.strategy = strategy
        return self._succeeded("Routing strategy updated", strategy=strategy)

    # Priority rules

    def new_rule_form(self) -> RuleForm:
        return RuleForm()

    def edit_rule_form(self, index: int) -> RuleForm:
        if not 0 <= index < len(self.rules):
            raise IndexError(f"No priority rule at index {index}")
        return RuleForm(self.rules[index], index=index)

    async def save_rule(self, form: RuleForm) -> bool:
        try:
            rule = form.submit()
        except FormValidationError as e:
            return self._invalid(e)

        try:
            async with self.session.mutation():
                if form.is_editing:
                    await self.api.update_priority_rule(form.editing_index, rule)
                    await self._sync_rules(lists.replace_at(self.rules, form.editing_index, rule))
                else:
                    await self.api.add_priority_rule(rule)
                    await self._sync_rules(lists.append(self.rules, rule))
        except ConsoleError as e:
            return self._failed("Update failed", e)

        if form.is_editing:
            return self._succeeded("Priority rule updated", index=form.editing_index)
        return self._succeeded("Priority rule added", index=len(self.rules) - 1)

    async def delete_rule(self, index: int) -> bool:
        try:
            async with self.session.mutation():
                await self.api.delete_priority_rule(index)
                await self._sync_rules(lists.remove_at(self.rules, index))
        except ConsoleError as e:
            return self._failed("Delete failed", e)
        return self._succeeded("Priority rule deleted", index=index)

    # Auth bindings

    def new_binding_form(self) -> BindingForm:
        return BindingForm()

    def edit_binding_form(self, index: int) -> BindingForm:
        if not 0 <= index < len(self.bindings):
            raise IndexError(f"No binding at index {index}")
        return BindingForm(self.bindings[index], index=index)

    async def save_binding(self, form: BindingForm) -> bool:
        try:
            binding = form.submit()
        except FormValidationError as e:
            return self._invalid(e)

        try:
            async with self.session.mutation():
                if form.is_editing:
                    await self.api.update_binding(form.editing_index, binding)
                    await self._sync_bindings(lists.replace_at(self.bindings, form.editing_index, binding))
                else:
                    await self.api.add_binding(binding)
                    await self._sync_bindings(lists.append(self.bindings, binding))
        except ConsoleError as e:
            return self._failed("Update failed", e)

        if form.is_editing:
            return self._succeeded("Binding updated", index=form.editing_index)
        return self._succeeded("Binding added", api_key=binding.api_key)

    async def delete_binding(self, index: int) -> bool:
        try:
            async with self.session.mutation():
                await self.api.delete_binding(index)
                await self._sync_bindings(lists.remove_at(self.bindings, index))
        except ConsoleError as e:
            return self._failed("Delete failed", e)
        return self._succeeded("Binding deleted", index=index)

    # Views

    def rule_rows(self) -> list[RuleRow]:
        return [
            RuleRow(
                index=i,
                label=DEFAULT_RULE_LABEL if rule.is_default else ", ".join(rule.models),
                models=list(rule.models),
                order=[o.pattern for o in rule.order],
                fallback=rule.fallback,
            )
            for i, rule in enumerate(self.rules)
        ]

    def binding_rows(self) -> list[BindingRow]:
        return [
            BindingRow(index=i, api_key=b.api_key, auth_ids=list(b.auth_ids), fallback=b.fallback)
            for i, b in enumerate(self.bindings)
        ]

    # Reconciliation

    async def _sync_rules(self, patched: list[PriorityRule]) -> None:
        if get_settings().refetch_after_mutation:
            try:
                self.rules = await self.api.get_priority()
                return
            except ConsoleError as e:
                get_audit_logger().warning(
                    "Rule list re-fetch failed, keeping local copy",
                    extra={"audit_data": {"error": e.message}},
                )
        self.rules = patched

    async def _sync_bindings(self, patched: list[AuthBinding]) -> None:
        if get_settings().refetch_after_mutation:
            try:
                self.bindings = await self.api.get_bindings()
                return
            except ConsoleError as e:
                get_audit_logger().warning(
                    "Binding list re-fetch failed, keeping local copy",
                    extra={"audit_data": {"error": e.message}},
                )
        self.bindings = patched

    # Notifications

    def _succeeded(self, message: str, **audit_data) -> bool:
        log_action(message, **audit_data)
        self.session.notify(message, "success")
        return True

    def _failed(self, prefix: str, error: ConsoleError) -> bool:
        log_action(f"Routing {prefix.lower()}", outcome="failed", error=error.message)
        self.session.notify(f"{prefix}: {error.message}", "error")
        return False

    def _invalid(self, error: FormValidationError) -> bool:
        log_action("Routing draft rejected", outcome="rejected", error=error.message)
        self.session.notify(error.message, "error")
        return False
