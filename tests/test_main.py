"""Integration tests for policy_console/main.py — console endpoints via ASGI transport."""

from unittest.mock import patch

import httpx
import pytest

import policy_console.session.factory as factory_mod
import policy_console.transport.registry as registry_mod
from policy_console.errors import TransportError
from policy_console.policies.models import PriorityRule
from policy_console.session.session import CONNECTED

HEADERS = {"X-API-Key": "op-key"}


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Reset session, screens and transport client between tests."""
    factory_mod.reset_console()
    monkeypatch.setattr(registry_mod, "_client", None)
    yield
    factory_mod.reset_console()
    monkeypatch.setattr(registry_mod, "_client", None)


@pytest.fixture
def app_client(override_settings, routing_api, rate_limits_api):
    """httpx AsyncClient wired to the console app with mocked management APIs."""
    override_settings(CONSOLE_API_KEYS="op-key", REFETCH_AFTER_MUTATION="false")
    with patch("policy_console.session.factory.get_routing_api", return_value=routing_api), \
            patch("policy_console.session.factory.get_rate_limits_api", return_value=rate_limits_api), \
            patch("policy_console.main.get_routing_api", return_value=routing_api):
        from policy_console.main import app
        transport = httpx.ASGITransport(app=app)
        yield httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
def connected():
    factory_mod.get_session().connection_status = CONNECTED


class TestHealthAndAuth:

    async def test_health(self, app_client):
        resp = await app_client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["connection"] == "disconnected"
        assert "X-Request-Id" in resp.headers

    async def test_missing_key(self, app_client):
        resp = await app_client.get("/console/routing")
        assert resp.status_code == 401

    async def test_invalid_key(self, app_client):
        resp = await app_client.get("/console/routing", headers={"X-API-Key": "nope"})
        assert resp.status_code == 403


class TestConnect:

    async def test_connect_success(self, app_client, routing_api):
        routing_api.get_strategy.return_value = "round-robin"
        resp = await app_client.post("/console/connect", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["connection_status"] == "connected"

    async def test_connect_failure(self, app_client, routing_api):
        routing_api.get_strategy.side_effect = TransportError("Cannot reach management API")
        resp = await app_client.post("/console/connect", headers=HEADERS)
        assert resp.status_code == 502
        assert resp.json()["connection_status"] == "disconnected"


class TestRoutingEndpoints:

    async def test_view_loads_once(self, app_client, routing_api):
        resp = await app_client.get("/console/routing", headers=HEADERS)
        assert resp.status_code == 200
        data = resp.json()
        assert data["strategy"] == "round-robin"
        assert [r["label"] for r in data["rules"]] == ["claude-3", "default"]
        assert len(data["bindings"]) == 3

        await app_client.get("/console/routing", headers=HEADERS)
        routing_api.get_config.assert_awaited_once()

    async def test_view_load_failure(self, app_client, routing_api):
        routing_api.get_config.side_effect = TransportError("Cannot reach management API")
        resp = await app_client.get("/console/routing", headers=HEADERS)
        assert resp.status_code == 502
        assert resp.json()["error"] == "Cannot reach management API"

    async def test_add_rule(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.post(
            "/console/routing/rules",
            json={"models": ["gpt-4"], "order": ["org-a"], "order_input": "org-b", "fallback": False},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["rules"][-1]["order"] == ["org-a", "org-b"]
        assert data["rules"][-1]["fallback"] is False
        assert data["notification"] == "Priority rule added"

    async def test_add_rule_without_order(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.post("/console/routing/rules", json={"models": ["gpt-4"]}, headers=HEADERS)
        assert resp.status_code == 400
        assert "order" in resp.json()["error"]
        routing_api.add_priority_rule.assert_not_awaited()

    async def test_update_rule_keeps_unsent_fields(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.put("/console/routing/rules/0", json={"fallback": True}, headers=HEADERS)
        assert resp.status_code == 200
        index, rule = routing_api.update_priority_rule.await_args.args
        assert index == 0
        assert isinstance(rule, PriorityRule)
        assert rule.models == ["claude-3"]
        assert rule.fallback is True

    async def test_update_missing_rule(self, app_client, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.put("/console/routing/rules/9", json={}, headers=HEADERS)
        assert resp.status_code == 404

    async def test_update_missing_binding(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.put("/console/routing/bindings/7", json={}, headers=HEADERS)
        assert resp.status_code == 404
        routing_api.update_binding.assert_not_awaited()

    async def test_delete_binding(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.delete("/console/routing/bindings/1", headers=HEADERS)
        assert resp.status_code == 200
        assert [b["api_key"] for b in resp.json()["bindings"]] == ["key-a", "key-c"]

    async def test_mutation_while_disconnected(self, app_client, routing_api):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.put("/console/routing/strategy", json={"strategy": "fill-first"}, headers=HEADERS)
        assert resp.status_code == 400
        assert "Not connected" in resp.json()["error"]
        routing_api.update_strategy.assert_not_awaited()


class TestRateLimitEndpoints:

    async def test_view(self, app_client):
        resp = await app_client.get("/console/rate-limits", headers=HEADERS)
        assert resp.status_code == 200
        data = resp.json()
        assert data["rate_limiting"]["exceeded-status-code"] == 503
        assert data["configs"][0]["usage"][0]["percent"] == 90

    async def test_toggle(self, app_client, rate_limits_api, connected):
        await app_client.get("/console/rate-limits", headers=HEADERS)
        resp = await app_client.post("/console/rate-limits/toggle", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["rate_limiting"] == {
            "enabled": False,
            "exceeded-status-code": 503,
            "persistence-path": "/var/lib/limits.json",
        }
        rate_limits_api.update_rate_limiting.assert_awaited_once()

    async def test_save_settings(self, app_client, rate_limits_api, connected):
        await app_client.get("/console/rate-limits", headers=HEADERS)
        resp = await app_client.put(
            "/console/rate-limits/settings",
            json={"exceeded_status_code": "", "persistence_path": " /data/usage.json "},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        assert resp.json()["rate_limiting"]["exceeded-status-code"] == 429
        assert resp.json()["rate_limiting"]["persistence-path"] == "/data/usage.json"

    async def test_add_config(self, app_client, rate_limits_api, connected):
        await app_client.get("/console/rate-limits", headers=HEADERS)
        resp = await app_client.post(
            "/console/rate-limits/configs",
            json={"key": "team/gamma", "requests_per_day": 100, "allowed_providers": ["claude"]},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        sent = rate_limits_api.add_config.await_args.args[0]
        assert sent.to_dict() == {
            "key": "team/gamma",
            "limits": {"requests-per-day": 100},
            "allowed-providers": ["claude"],
        }

    async def test_update_unknown_config(self, app_client, connected):
        await app_client.get("/console/rate-limits", headers=HEADERS)
        resp = await app_client.put("/console/rate-limits/configs/nope", json={}, headers=HEADERS)
        assert resp.status_code == 404
        assert "nope" in resp.json()["detail"]

    async def test_reset_usage(self, app_client, rate_limits_api, connected):
        await app_client.get("/console/rate-limits", headers=HEADERS)
        resp = await app_client.delete("/console/rate-limits/usage/team-alpha", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["configs"][0]["can_reset_usage"] is False


class TestNotifications:

    async def test_list_and_dismiss(self, app_client, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        await app_client.put("/console/routing/strategy", json={"strategy": "fill-first"}, headers=HEADERS)

        resp = await app_client.get("/console/notifications", headers=HEADERS)
        notifications = resp.json()["notifications"]
        assert notifications[-1]["message"] == "Routing strategy updated"

        resp = await app_client.delete(f"/console/notifications/{notifications[-1]['id']}", headers=HEADERS)
        assert resp.status_code == 200
        resp = await app_client.delete(f"/console/notifications/{notifications[-1]['id']}", headers=HEADERS)
        assert resp.status_code == 404


class TestRequestBodies:

    @pytest.mark.parametrize("method, path", [
        ("PUT", "/console/routing/strategy"),
        ("POST", "/console/routing/rules"),
        ("POST", "/console/routing/bindings"),
        ("PUT", "/console/rate-limits/settings"),
        ("POST", "/console/rate-limits/configs"),
    ])
    async def test_non_object_body_rejected(self, app_client, connected, method, path):
        await app_client.get("/console/routing", headers=HEADERS)
        await app_client.get("/console/rate-limits", headers=HEADERS)
        resp = await app_client.request(method, path, json=["fill-first"], headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Request body must be a JSON object"

    async def test_invalid_json_rejected(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.put(
            "/console/routing/strategy",
            content=b"{not json",
            headers={**HEADERS, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        routing_api.update_strategy.assert_not_awaited()

    async def test_list_field_must_be_array(self, app_client, routing_api, connected):
        await app_client.get("/console/routing", headers=HEADERS)
        resp = await app_client.post(
            "/console/routing/rules", json={"models": "gpt-4", "order": ["*"]}, headers=HEADERS
        )
        assert resp.status_code == 400
        routing_api.add_priority_rule.assert_not_awaited()


class TestUnexpectedErrors:

    async def test_internal_key_error_is_not_a_404(self, override_settings, rate_limits_api):
        override_settings(CONSOLE_API_KEYS="op-key")
        rate_limits_api.get_configs.side_effect = KeyError("limits")
        with patch("policy_console.session.factory.get_rate_limits_api", return_value=rate_limits_api):
            from policy_console.main import app
            transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                resp = await client.get("/console/rate-limits", headers=HEADERS)
        assert resp.status_code == 500
