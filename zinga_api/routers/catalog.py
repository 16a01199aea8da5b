"""Relational CRUD routes used by the admin dashboard."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from zinga_api.routers.common import json_body
from zinga_api.services.catalog_service import CatalogError, CatalogService

router = APIRouter(prefix="/api", tags=["catalog"])
service = CatalogService()
logger = logging.getLogger(__name__)


def _error_response(err: CatalogError) -> JSONResponse:
    return JSONResponse({"error": err.message}, status_code=err.status_code)


def _run(action: str, fn, *args):
    try:
        return fn(*args)
    except CatalogError as exc:
        return _error_response(exc)
    except SQLAlchemyError:
        logger.exception("Failed to %s", action)
        return JSONResponse({"error": f"Failed to {action}"}, status_code=500)


async def _object_body(request: Request) -> dict | JSONResponse:
    payload = await json_body(request)
    if not isinstance(payload, dict):
        return _error_response(CatalogError("Invalid data format"))
    return payload


# -------------------------- users --------------------------
@router.get("/users")
def list_users():
    return _run("fetch users", service.list_users)


@router.post("/users")
async def create_user(request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("create user", service.create_user, payload)


@router.put("/users/{user_id}")
async def update_user(user_id: str, request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("update user", service.update_user, user_id, payload)


@router.delete("/users/{user_id}")
def delete_user(user_id: str, x_admin_id: str | None = Header(default=None)):
    return _run("delete user", service.delete_user, user_id, x_admin_id)


# -------------------------- modules --------------------------
@router.get("/modules")
def list_modules():
    return _run("fetch modules", service.list_modules)


@router.post("/modules")
async def create_module(request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("create module", service.create_module, payload)


@router.put("/modules/{module_id}")
async def update_module(module_id: str, request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("update module", service.update_module, module_id, payload)


@router.delete("/modules/{module_id}")
def delete_module(module_id: str):
    return _run("delete module", service.delete_module, module_id)


# -------------------------- packages --------------------------
@router.get("/packages")
def list_packages():
    return _run("fetch packages", service.list_packages)


@router.post("/packages")
async def create_package(request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("create package", service.create_package, payload)


@router.put("/packages/{package_id}")
async def update_package(package_id: str, request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("update package", service.update_package, package_id, payload)


@router.delete("/packages/{package_id}")
def delete_package(package_id: str):
    return _run("delete package", service.delete_package, package_id)


# -------------------------- purchases --------------------------
@router.get("/purchases")
def list_purchases(userId: str | None = None):
    return _run("fetch purchases", service.list_purchases, userId)


@router.post("/purchases")
async def create_purchase(request: Request):
    payload = await _object_body(request)
    if isinstance(payload, JSONResponse):
        return payload
    return _run("create purchase", service.create_purchase, payload)


# -------------------------- audit / maintenance --------------------------
@router.get("/audit")
def audit_logs():
    return _run("fetch audit logs", service.audit_logs)


@router.delete("/force-delete")
def force_delete(x_admin_id: str | None = Header(default=None)):
    return _run("wipe database", service.wipe, x_admin_id)
