from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from zinga_api.repositories.json_storage import StoreError
from zinga_api.routers.common import error_response, failure_response, json_body, service_from_state
from zinga_api.services.backup_service import BackupService

router = APIRouter(prefix="/api/backup", tags=["backup"])
logger = logging.getLogger(__name__)


def _service(request: Request) -> BackupService:
    return service_from_state(request, "backup_service")


@router.get("")
def list_backups(request: Request):
    try:
        return _service(request).list()
    except Exception:
        return failure_response(logger, "Failed to list backups")


@router.post("")
async def restore_backup(request: Request):
    payload = await json_body(request)
    filename = payload.get("filename") if isinstance(payload, dict) else None
    try:
        return _service(request).restore(filename)
    except StoreError as exc:
        if exc.status_code >= 500:
            logger.error("Failed to restore backup: %s", exc.message)
        return error_response(exc)
    except Exception:
        return failure_response(logger, "Failed to restore backup")
