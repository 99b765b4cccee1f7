"""POST /v1/webhooks/entitlements - Store purchase notifications"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from thought_gateway.api.dependencies import get_entitlements, get_request_id
from thought_gateway.api.v1.schemas import EntitlementWebhookRequest, EntitlementWebhookResponse
from thought_gateway.domain.entitlements import EntitlementProcessor
from thought_gateway.domain.exceptions import InvalidAccountError, InvalidEventError
from thought_gateway.domain.models import EntitlementEvent

router = APIRouter()


@router.post("/webhooks/entitlements", response_model=EntitlementWebhookResponse)
async def entitlement_webhook(
    request_body: EntitlementWebhookRequest,
    request: Request,
    processor: EntitlementProcessor = Depends(get_entitlements),
):
    """
    Grant credits for a purchase exactly once per event id.

    Duplicates answer 200 so the notifier stops redelivering. Storage
    failures answer 500 so it retries later; nothing was granted.
    """
    request_id = get_request_id(request)
    event = EntitlementEvent(
        event_id=request_body.event_id,
        subject_id=request_body.subject_id,
        product_id=request_body.product_id,
    )
    try:
        result = await processor.handle(event)
    except (InvalidEventError, InvalidAccountError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logging.error(f"Entitlement processing error: {e}", extra={"request_id": request_id, "event_id": event.event_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return EntitlementWebhookResponse(
        outcome=result.outcome.value,
        pool=result.pool,
        remaining=result.balance.remaining if result.balance else None,
    )
