"""Policy Console — FastAPI application entry point.

Administrative console for a routing / rate-limiting control plane.
Each endpoint is one operator action on the routing or rate-limits
screen; the control plane's management API stays the source of truth.
"""

from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from policy_console.editors.tag_list import TagList
from policy_console.forms.api_key_config import ApiKeyConfigForm
from policy_console.forms.binding import BindingForm
from policy_console.forms.rule import RuleForm
from policy_console.logging.audit import (
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from policy_console.policies.models import LIMIT_FIELDS
from policy_console.screens.rate_limits import RateLimitsScreen
from policy_console.screens.routing import RoutingScreen
from policy_console.security.auth import verify_operator_key
from policy_console.session.factory import (
    get_rate_limits_screen,
    get_routing_screen,
    get_session,
)
from policy_console.session.session import ConsoleSession
from policy_console.transport.registry import close_api_client, get_routing_api

VERSION = "0.3.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Console started")
    yield
    await close_api_client()
    get_audit_logger().info("Console stopped")


app = FastAPI(
    title="Policy Console",
    description="Admin console for routing and rate-limiting policies",
    version=VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    rid = generate_request_id()
    request_id_var.set(rid)
    response = await call_next(request)
    response.headers["X-Request-Id"] = rid
    return response


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION, "connection": get_session().connection_status}


# --- Console (every route requires an operator key) ---

console = APIRouter(prefix="/console", dependencies=[Depends(verify_operator_key)])


@console.post("/connect")
async def connect():
    session = get_session()
    ok = await session.connect(get_routing_api().get_strategy)
    get_audit_logger().info("Connect requested", extra={"audit_data": {"ok": ok}})
    return JSONResponse(
        status_code=200 if ok else 502,
        content={"connection_status": session.connection_status},
    )


@console.get("/notifications")
async def notifications():
    return {"notifications": [asdict(n) for n in get_session().notifications]}


@console.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: int):
    if not get_session().dismiss(notification_id):
        return JSONResponse(status_code=404, content={"error": "Unknown notification"})
    return {"ok": True}


# --- Routing screen ---


@console.get("/routing")
async def routing_view():
    screen = get_routing_screen()
    if not screen.loaded:
        await screen.load()
    return _routing_response(screen)


@console.post("/routing/refresh")
async def routing_refresh():
    screen = get_routing_screen()
    await screen.refresh()
    return _routing_response(screen)


@console.put("/routing/strategy")
async def routing_strategy(request: Request):
    body = await _json_object(request)
    screen = get_routing_screen()
    ok = await screen.change_strategy(str(body.get("strategy", "")))
    return _action_response(ok, screen.session, _routing_view(screen))


@console.post("/routing/rules")
async def add_rule(request: Request):
    screen = get_routing_screen()
    form = _apply_rule_draft(screen.new_rule_form(), await _json_object(request))
    ok = await screen.save_rule(form)
    return _action_response(ok, screen.session, _routing_view(screen))


@console.put("/routing/rules/{index}")
async def update_rule(index: int, request: Request):
    screen = get_routing_screen()
    form = _apply_rule_draft(_rule_form(screen, index), await _json_object(request))
    ok = await screen.save_rule(form)
    return _action_response(ok, screen.session, _routing_view(screen))


@console.delete("/routing/rules/{index}")
async def delete_rule(index: int):
    screen = get_routing_screen()
    ok = await screen.delete_rule(index)
    return _action_response(ok, screen.session, _routing_view(screen))


@console.post("/routing/bindings")
async def add_binding(request: Request):
    screen = get_routing_screen()
    form = _apply_binding_draft(screen.new_binding_form(), await _json_object(request))
    ok = await screen.save_binding(form)
    return _action_response(ok, screen.session, _routing_view(screen))


@console.put("/routing/bindings/{index}")
async def update_binding(index: int, request: Request):
    screen = get_routing_screen()
    form = _apply_binding_draft(_binding_form(screen, index), await _json_object(request))
    ok = await screen.save_binding(form)
    return _action_response(ok, screen.session, _routing_view(screen))


@console.delete("/routing/bindings/{index}")
async def delete_binding(index: int):
    screen = get_routing_screen()
    ok = await screen.delete_binding(index)
    return _action_response(ok, screen.session, _routing_view(screen))


# --- Rate limits screen ---


@console.get("/rate-limits")
async def rate_limits_view():
    screen = get_rate_limits_screen()
    if not screen.loaded:
        await screen.load()
    return _rate_limits_view(screen)


@console.post("/rate-limits/refresh")
async def rate_limits_refresh():
    screen = get_rate_limits_screen()
    await screen.refresh()
    return _rate_limits_view(screen)


@console.post("/rate-limits/toggle")
async def rate_limits_toggle():
    screen = get_rate_limits_screen()
    ok = await screen.toggle_enabled()
    return _action_response(ok, screen.session, _rate_limits_view(screen))


@console.put("/rate-limits/settings")
async def rate_limits_settings(request: Request):
    body = await _json_object(request)
    screen = get_rate_limits_screen()
    form = screen.settings_form
    if "exceeded_status_code" in body:
        form.exceeded_status_code = _text(body["exceeded_status_code"])
    if "persistence_path" in body:
        form.persistence_path = _text(body["persistence_path"])
    ok = await screen.save_global_settings()
    return _action_response(ok, screen.session, _rate_limits_view(screen))


@console.post("/rate-limits/configs")
async def add_config(request: Request):
    screen = get_rate_limits_screen()
    form = _apply_config_draft(screen.new_config_form(), await _json_object(request))
    ok = await screen.save_config(form)
    return _action_response(ok, screen.session, _rate_limits_view(screen))


@console.put("/rate-limits/configs/{key}")
async def update_config(key: str, request: Request):
    screen = get_rate_limits_screen()
    form = _apply_config_draft(_config_form(screen, key), await _json_object(request))
    ok = await screen.save_config(form)
    return _action_response(ok, screen.session, _rate_limits_view(screen))


@console.delete("/rate-limits/configs/{key}")
async def delete_config(key: str):
    screen = get_rate_limits_screen()
    ok = await screen.delete_config(key)
    return _action_response(ok, screen.session, _rate_limits_view(screen))


@console.delete("/rate-limits/usage/{key}")
async def reset_usage(key: str):
    screen = get_rate_limits_screen()
    ok = await screen.reset_usage(key)
    return _action_response(ok, screen.session, _rate_limits_view(screen))


app.include_router(console)


# --- Drafts and views ---


async def _json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


def _rule_form(screen: RoutingScreen, index: int) -> RuleForm:
    try:
        return screen.edit_rule_form(index)
    except IndexError:
        raise HTTPException(status_code=404, detail=f"No priority rule at index {index}")


def _binding_form(screen: RoutingScreen, index: int) -> BindingForm:
    try:
        return screen.edit_binding_form(index)
    except IndexError:
        raise HTTPException(status_code=404, detail=f"No binding at index {index}")


def _config_form(screen: RateLimitsScreen, key: str) -> ApiKeyConfigForm:
    try:
        return screen.edit_config_form(key)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No config for key {key!r}")


def _text(value) -> str:
    return "" if value is None else str(value)


def _tags(values) -> TagList:
    if values is not None and not isinstance(values, list):
        raise HTTPException(status_code=400, detail="List fields must be JSON arrays")
    return TagList([_text(v) for v in values or []])


def _apply_rule_draft(form: RuleForm, body: dict) -> RuleForm:
    """Overlay the posted draft on the form. Missing fields keep their seeded value."""
    if "models" in body:
        form.models = _tags(body["models"])
    if "order" in body:
        form.order = _tags(body["order"])
    form.models.set_input(_text(body.get("models_input")))
    form.order.set_input(_text(body.get("order_input")))
    if "fallback" in body:
        form.fallback = bool(body["fallback"])
    return form


def _apply_binding_draft(form: BindingForm, body: dict) -> BindingForm:
    if "api_key" in body:
        form.set_api_key(_text(body["api_key"]))
    if "auth_ids" in body:
        form.auth_ids = _tags(body["auth_ids"])
    form.auth_ids.set_input(_text(body.get("auth_ids_input")))
    if "fallback" in body:
        form.fallback = bool(body["fallback"])
    return form


def _apply_config_draft(form: ApiKeyConfigForm, body: dict) -> ApiKeyConfigForm:
    if "key" in body:
        form.set_key(_text(body["key"]))
    for attr in LIMIT_FIELDS:
        if attr in body:
            setattr(form, attr, _text(body[attr]))
    if "allowed_providers" in body:
        form.allowed_providers = _tags(body["allowed_providers"])
    if "auth_ids" in body:
        form.auth_ids = _tags(body["auth_ids"])
    form.allowed_providers.set_input(_text(body.get("allowed_providers_input")))
    form.auth_ids.set_input(_text(body.get("auth_ids_input")))
    return form


def _routing_view(screen: RoutingScreen) -> dict:
    return {
        "strategy": screen.strategy,
        "rules": [asdict(r) for r in screen.rule_rows()],
        "bindings": [asdict(b) for b in screen.binding_rows()],
        "error": screen.error,
        "controls_disabled": screen.session.controls_disabled,
    }


def _routing_response(screen: RoutingScreen) -> JSONResponse:
    # Page-level load failure is reported with the last known state
    return JSONResponse(status_code=502 if screen.error else 200, content=_routing_view(screen))


def _rate_limits_view(screen: RateLimitsScreen) -> dict:
    return {
        "rate_limiting": screen.rate_limiting.to_dict(),
        "settings_draft": {
            "exceeded_status_code": screen.settings_form.exceeded_status_code,
            "persistence_path": screen.settings_form.persistence_path,
        },
        "configs": [asdict(row) for row in screen.config_rows()],
        "controls_disabled": screen.session.controls_disabled,
    }


def _action_response(ok: bool, session: ConsoleSession, view: dict):
    latest = session.latest()
    message = latest.message if latest else ""
    if not ok:
        return JSONResponse(status_code=400, content={"error": message})
    return {**view, "notification": message}
