from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from zinga_api.repositories.json_storage import StoreError
from zinga_api.routers.common import error_response, failure_response, json_body, service_from_state
from zinga_api.services.data_service import DataService

router = APIRouter(prefix="/api/data", tags=["data"])
logger = logging.getLogger(__name__)


def _service(request: Request) -> DataService:
    return service_from_state(request, "data_service")


@router.get("")
def load_data(request: Request):
    try:
        return _service(request).load()
    except StoreError as exc:
        logger.error("Failed to load data: %s", exc.message)
        return error_response(exc)
    except Exception:
        return failure_response(logger, "Failed to load data")


@router.post("")
async def save_data(request: Request):
    payload = await json_body(request)
    try:
        return _service(request).save(payload)
    except StoreError as exc:
        return error_response(exc)
    except Exception:
        return failure_response(logger, "Failed to save data")


@router.delete("")
def reset_data(request: Request):
    try:
        return _service(request).reset()
    except StoreError as exc:
        return error_response(exc)
    except Exception:
        return failure_response(logger, "Failed to reset data")
