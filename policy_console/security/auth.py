"""Operator authentication for the console app.

Validates the X-API-Key header against the configured console keys.
"""

import hmac

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from policy_console.config.settings import get_settings
from policy_console.logging.audit import operator_var

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_operator_key(api_key: str | None = Security(api_key_header)) -> str:
    """FastAPI dependency that binds a short operator id to the audit log context."""
    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")

    match = ""
    for valid_key in get_settings().api_keys_list:
        # Always iterate all keys to maintain constant-time behavior
        if hmac.compare_digest(api_key, valid_key):
            match = valid_key

    if not match:
        raise HTTPException(status_code=403, detail="Invalid API key")
    operator = f"operator-{match[:8]}"
    operator_var.set(operator)
    return operator
