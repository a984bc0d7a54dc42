"""HTTP client for the control plane's management API.

Marshaling only: JSON in, JSON out. Network failures become
TransportError, non-2xx answers and ``ok: false`` bodies become
RemoteError. No retries; every retry is operator-initiated.
"""

import httpx

from policy_console.config.settings import get_settings
from policy_console.errors import RemoteError, TransportError
from policy_console.logging.audit import RequestTimer, get_audit_logger


class ApiClient:
    """Thin async wrapper around httpx for management API calls."""

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            settings = get_settings()
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout)
            )
        return self._client

    def _build_headers(self) -> dict:
        settings = get_settings()
        headers = {"Content-Type": "application/json"}
        if settings.management_key:
            headers["Authorization"] = f"Bearer {settings.management_key}"
        return headers

    def _url(self, path: str) -> str:
        settings = get_settings()
        return f"{settings.management_base_url.rstrip('/')}/{path.lstrip('/')}"

    async def get(self, path: str):
        return await self.request("GET", path)

    async def post(self, path: str, body: dict):
        return await self.request("POST", path, body)

    async def put(self, path: str, body: dict):
        return await self.request("PUT", path, body)

    async def delete(self, path: str):
        return await self.request("DELETE", path)

    async def request(self, method: str, path: str, body: dict | None = None):
        logger = get_audit_logger()
        client = await self._get_client()

        try:
            with RequestTimer() as timer:
                response = await client.request(
                    method, self._url(path), json=body, headers=self._build_headers()
                )
        except httpx.ConnectError:
            logger.warning("Management API unreachable", extra={"audit_data": {"method": method, "path": path}})
            raise TransportError("Cannot reach management API")
        except httpx.TimeoutException:
            logger.warning("Management API timed out", extra={"audit_data": {"method": method, "path": path}})
            raise TransportError("Management API timed out")
        except httpx.HTTPError as e:
            logger.warning("Management API error", extra={"audit_data": {"method": method, "path": path}})
            raise TransportError(f"Management API error: {e}")

        logger.info(
            "Management API call",
            extra={"audit_data": {
                "method": method,
                "path": path,
                "status": response.status_code,
                "latency_ms": timer.elapsed_ms,
            }},
        )

        data = _decode(response)
        if response.status_code >= 400:
            raise RemoteError(response.status_code, _error_message(data, response))
        if isinstance(data, dict) and data.get("ok") is False:
            raise RemoteError(response.status_code, _error_message(data, response))
        return data

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _decode(response: httpx.Response):
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {}


def _error_message(data, response: httpx.Response) -> str:
    """Prefer the server-reported message, fall back to the status line."""
    if isinstance(data, dict):
        for field in ("error", "message", "detail"):
            if isinstance(data.get(field), str) and data[field]:
                return data[field]
    return f"HTTP {response.status_code}"
