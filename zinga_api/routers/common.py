"""Helpers shared by the store-backed routers."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from zinga_api.repositories.json_storage import StoreError


def service_from_state(request: Request, name: str):
    svc = getattr(getattr(request.app, "state", None), name, None)
    if not svc:
        raise RuntimeError(f"{name} not configured")
    return svc


async def json_body(request: Request) -> Any:
    """Parsed JSON body, or None when the body is empty or not JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def error_response(err: StoreError) -> JSONResponse:
    return JSONResponse({"success": False, "error": err.message}, status_code=err.status_code)


def failure_response(logger: logging.Logger, message: str) -> JSONResponse:
    """Log the active exception and return a generic 500 body."""
    logger.exception(message)
    return JSONResponse({"success": False, "error": message}, status_code=500)
