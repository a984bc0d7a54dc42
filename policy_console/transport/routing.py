"""Routing policy endpoints: strategy, priority rules, auth bindings."""

from policy_console.policies.models import (
    ROUND_ROBIN,
    AuthBinding,
    MutationResult,
    PriorityRule,
    RoutingConfig,
)
from policy_console.transport.client import ApiClient

BASE_PATH = "/routing"


class RoutingApi:
    """Typed calls for the ``/routing`` resource tree.

    Rules and bindings are addressed by list position, so callers must
    keep their local list in the same order as the remote one.
    """

    def __init__(self, client: ApiClient):
        self._client = client

    async def get_config(self) -> RoutingConfig:
        return RoutingConfig.from_dict(await self._client.get(BASE_PATH))

    async def update_config(self, config: RoutingConfig) -> MutationResult:
        return MutationResult.from_dict(await self._client.put(BASE_PATH, config.to_dict()))

    async def get_strategy(self) -> str:
        data = await self._client.get(f"{BASE_PATH}/strategy")
        return data.get("strategy") or ROUND_ROBIN

    async def update_strategy(self, strategy: str) -> MutationResult:
        data = await self._client.put(f"{BASE_PATH}/strategy", {"strategy": strategy})
        return MutationResult.from_dict(data)

    # Priority rules

    async def get_priority(self) -> list[PriorityRule]:
        data = await self._client.get(f"{BASE_PATH}/priority")
        return [PriorityRule.from_dict(r) for r in data.get("priority") or []]

    async def update_priority(self, priority: list[PriorityRule]) -> MutationResult:
        data = await self._client.put(
            f"{BASE_PATH}/priority", {"priority": [r.to_dict() for r in priority]}
        )
        return MutationResult.from_dict(data)

    async def add_priority_rule(self, rule: PriorityRule) -> MutationResult:
        return MutationResult.from_dict(await self._client.post(f"{BASE_PATH}/priority", rule.to_dict()))

    async def get_priority_rule(self, index: int) -> PriorityRule:
        return PriorityRule.from_dict(await self._client.get(f"{BASE_PATH}/priority/{index}"))

    async def update_priority_rule(self, index: int, rule: PriorityRule) -> MutationResult:
        data = await self._client.put(f"{BASE_PATH}/priority/{index}", rule.to_dict())
        return MutationResult.from_dict(data)

    async def delete_priority_rule(self, index: int) -> MutationResult:
        return MutationResult.from_dict(await self._client.delete(f"{BASE_PATH}/priority/{index}"))

    # Auth bindings

    async def get_bindings(self) -> list[AuthBinding]:
        data = await self._client.get(f"{BASE_PATH}/bindings")
        return [AuthBinding.from_dict(b) for b in data.get("bindings") or []]

    async def update_bindings(self, bindings: list[AuthBinding]) -> MutationResult:
        data = await self._client.put(
            f"{BASE_PATH}/bindings", {"bindings": [b.to_dict() for b in bindings]}
        )
        return MutationResult.from_dict(data)

    async def add_binding(self, binding: AuthBinding) -> MutationResult:
        return MutationResult.from_dict(await self._client.post(f"{BASE_PATH}/bindings", binding.to_dict()))

    async def get_binding(self, index: int) -> AuthBinding:
        return AuthBinding.from_dict(await self._client.get(f"{BASE_PATH}/bindings/{index}"))

    async def update_binding(self, index: int, binding: AuthBinding) -> MutationResult:
        data = await self._client.put(f"{BASE_PATH}/bindings/{index}", binding.to_dict())
        return MutationResult.from_dict(data)

    async def delete_binding(self, index: int) -> MutationResult:
        return MutationResult.from_dict(await self._client.delete(f"{BASE_PATH}/bindings/{index}"))
