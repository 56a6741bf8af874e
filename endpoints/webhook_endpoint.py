import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status

from services import webhook_services

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["webhook"],
    responses={
        400: {"description": "Bad Request - Invalid or unknown event"},
        404: {"description": "Not Found - Vehicle, spot or session does not exist"},
        409: {"description": "Conflict - Event contradicts the current session state"},
        422: {"description": "Unprocessable - All sectors are full"},
    },
)


@router.post(
    "/webhook",
    summary="Receive an ENTRY, PARKED or EXIT event from the garage",
    response_description="Event acknowledgment",
)
def handle_webhook(payload: Dict[str, Any] = Body(...)):
    try:
        return webhook_services.dispatch_event(payload)
    except HTTPException as e:
        logger.warning(f"Webhook event rejected ({e.status_code}): {e.detail}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error processing webhook event: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred"
        )
