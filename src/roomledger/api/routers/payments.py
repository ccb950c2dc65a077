import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from roomledger.api.deps import get_services
from roomledger.core.errors import SignatureError
from roomledger.services.payments import (
    RESULT_BAD_SIGNATURE,
    RESULT_INTERNAL_ERROR,
    GatewayCallback,
)
from roomledger.services.wiring import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/gateway/ipn")
async def gateway_ipn(
    payload: dict = Body(...),
    services: Services = Depends(get_services),
):
    """
    Payment notification webhook. Always answers with the gateway's
    ``{resultCode, message}`` shape.
    """
    try:
        callback = GatewayCallback.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Malformed gateway callback: {e}")
        return JSONResponse(
            status_code=400,
            content={
                "resultCode": RESULT_BAD_SIGNATURE,
                "message": "Malformed callback",
            },
        )

    try:
        ack = await services.payments.handle_gateway_callback(callback)
    except SignatureError as e:
        return JSONResponse(
            status_code=400,
            content={"resultCode": RESULT_BAD_SIGNATURE, "message": e.message},
        )
    except Exception as e:
        logger.error(f"Gateway callback failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "resultCode": RESULT_INTERNAL_ERROR,
                "message": "Internal server error",
            },
        )
    return JSONResponse(status_code=ack.http_status, content=ack.as_dict())
