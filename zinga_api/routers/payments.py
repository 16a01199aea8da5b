from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from zinga_api.repositories.json_storage import StoreError
from zinga_api.routers.common import error_response, failure_response, json_body, service_from_state
from zinga_api.services.payment_service import PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])
logger = logging.getLogger(__name__)


@router.post("/confirm")
async def confirm_payments(request: Request):
    payload = await json_body(request)
    purchase_ids = payload.get("purchaseIds") if isinstance(payload, dict) else None
    service: PaymentService = service_from_state(request, "payment_service")
    try:
        return service.confirm(purchase_ids)
    except StoreError as exc:
        return error_response(exc)
    except Exception:
        return failure_response(logger, "internal error")
