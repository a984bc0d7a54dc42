"""Priority rule form."""

from policy_console.editors.tag_list import TagList
from policy_console.errors import FormValidationError
from policy_console.policies.models import PriorityPattern, PriorityRule


class RuleForm:
    """Draft of one priority rule. Blank on add, seeded from the rule on edit."""

    def __init__(self, rule: PriorityRule | None = None, index: int | None = None):
        self.editing_index = index
        self.models = TagList(rule.models if rule else [])
        self.order = TagList([o.pattern for o in rule.order] if rule else [])
        self.fallback = rule.fallback if rule else True

    @property
    def is_editing(self) -> bool:
        return self.editing_index is not None

    def toggle_fallback(self) -> None:
        self.fallback = not self.fallback

    def submit(self) -> PriorityRule:
        """Validate the draft and build the rule to send.

        Empty ``models`` is allowed and makes this the default rule.
        """
        self.models.flush()
        self.order.flush()
        if not len(self.order):
            raise FormValidationError("At least one pattern is required in the order list")
        return PriorityRule(
            models=self.models.items,
            order=[PriorityPattern(pattern=p) for p in self.order],
            fallback=self.fallback,
        )
