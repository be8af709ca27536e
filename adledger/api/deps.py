"""ADLEDGER — Shared API dependencies (shared-secret and bearer checks)."""

import hmac
from typing import Optional

from fastapi import Header, Query, Request
from fastapi.responses import JSONResponse

from adledger.config import settings
from adledger.core.logging import get_logger

logger = get_logger("api.auth")


class APIError(Exception):
    """Error rendered as `{ok: false, code, error}` with the given status."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(message)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "code": exc.code, "error": exc.message},
    )


def _same_secret(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_import_key(
    x_import_key: Optional[str] = Header(default=None, alias="x-import-key"),
) -> None:
    """Shared-secret check for the Google Ads Script webhook."""
    expected = settings.script_import_key
    if not expected:
        logger.error("SCRIPT_IMPORT_KEY is not configured")
        raise APIError(
            500, "IMPORT_KEY_MISSING_ON_SERVER", "SCRIPT_IMPORT_KEY is not configured"
        )
    if not x_import_key:
        raise APIError(401, "IMPORT_KEY_REQUIRED", "Header x-import-key is required")
    if not _same_secret(x_import_key, expected):
        logger.warning("Rejected bulk ingest with an invalid import key")
        raise APIError(403, "IMPORT_KEY_INVALID", "Invalid import key")


def require_client_access(
    client_id: str = Query(alias="clientId"),
    authorization: Optional[str] = Header(default=None),
) -> str:
    """Bearer token must be configured and must own `clientId`.

    Returns the authorized client id.
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise APIError(401, "UNAUTHORIZED", "Bearer token required")

    token = token.strip()
    owned = None
    for known, clients in settings.export_tokens.items():
        if _same_secret(token, known):
            owned = clients
            break
    if owned is None:
        raise APIError(401, "UNAUTHORIZED", "Unknown token")
    if client_id not in owned:
        logger.warning("Token does not own client", extra={"client_id": client_id})
        raise APIError(403, "FORBIDDEN", "Token has no access to this client")
    return client_id
