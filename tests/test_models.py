"""Tests for policy_console/policies/models.py — wire (de)serialization."""

from policy_console.policies.models import (
    ApiKeyConfig,
    ApiKeyLimits,
    AuthBinding,
    MutationResult,
    PriorityRule,
    RateLimitingConfig,
    RoutingConfig,
)


class TestRoutingConfig:

    def test_from_dict(self):
        config = RoutingConfig.from_dict({
            "strategy": "fill-first",
            "priority": [{"models": ["gpt-4"], "order": [{"pattern": "org-a"}], "fallback": False}],
            "bindings": [{"api-key": "k1", "auth-ids": ["a1"]}],
        })
        assert config.strategy == "fill-first"
        assert config.priority[0].order[0].pattern == "org-a"
        assert config.priority[0].fallback is False
        assert config.bindings[0].api_key == "k1"
        assert config.bindings[0].fallback is True

    def test_missing_strategy_defaults_to_round_robin(self):
        config = RoutingConfig.from_dict({"priority": []})
        assert config.strategy == "round-robin"
        assert config.bindings is None

    def test_to_dict_omits_absent_bindings(self):
        assert "bindings" not in RoutingConfig().to_dict()


class TestPriorityRule:

    def test_fallback_only_false_when_explicit(self):
        assert PriorityRule.from_dict({"order": [], "fallback": None}).fallback is True
        assert PriorityRule.from_dict({"order": []}).fallback is True
        assert PriorityRule.from_dict({"order": [], "fallback": False}).fallback is False

    def test_empty_models_is_default(self):
        assert PriorityRule(models=[]).is_default
        assert not PriorityRule(models=["gpt-4"]).is_default

    def test_to_dict_wraps_patterns(self):
        rule = PriorityRule.from_dict({"models": [], "order": [{"pattern": "*"}]})
        assert rule.to_dict() == {"models": [], "order": [{"pattern": "*"}], "fallback": True}


class TestAuthBinding:

    def test_hyphenated_wire_names(self):
        binding = AuthBinding(api_key="k1", auth_ids=["a", "b"], fallback=False)
        assert binding.to_dict() == {"api-key": "k1", "auth-ids": ["a", "b"], "fallback": False}


class TestApiKeyConfig:

    def test_to_dict_omits_unset_fields(self):
        assert ApiKeyConfig(key="k").to_dict() == {"key": "k"}

    def test_limits_include_only_set_dimensions(self):
        config = ApiKeyConfig(key="k", limits=ApiKeyLimits(requests_per_day=10, tokens_per_month=0))
        assert config.to_dict()["limits"] == {"requests-per-day": 10, "tokens-per-month": 0}

    def test_from_dict(self):
        config = ApiKeyConfig.from_dict({
            "key": "k",
            "limits": {"tokens-per-day": 5000},
            "allowed-providers": ["gemini"],
        })
        assert config.limits.tokens_per_day == 5000
        assert config.limits.requests_per_day is None
        assert config.allowed_providers == ["gemini"]
        assert config.auth_ids is None


class TestRateLimitingConfig:

    def test_round_trip_names(self):
        config = RateLimitingConfig.from_dict({
            "enabled": False, "exceeded-status-code": 503, "persistence-path": "/tmp/x",
        })
        assert config.exceeded_status_code == 503
        assert config.to_dict() == {
            "enabled": False, "exceeded-status-code": 503, "persistence-path": "/tmp/x",
        }

    def test_to_dict_omits_unset(self):
        assert RateLimitingConfig(enabled=True).to_dict() == {"enabled": True}


class TestMutationResult:

    def test_optional_fields(self):
        result = MutationResult.from_dict({"ok": True, "changed": ["priority"], "index": 2})
        assert result.ok is True
        assert result.changed == ["priority"]
        assert result.index == 2

    def test_empty_body_is_ok(self):
        assert MutationResult.from_dict({}).ok is True
