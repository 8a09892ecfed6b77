# backend/app/routes/v1/webhooks.py
"""
Stripe webhook ingress - API v1

POST /stripe

The signature is verified against the raw body before anything is written.
Duplicate deliveries are acknowledged without reprocessing; a processing
failure answers 500 so Stripe retries the delivery.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...api.dependencies import get_stripe_webhook_service
from ...core.exceptions import DomainException
from ...schemas.payments import WebhookResponse
from ...services.stripe_webhook_service import StripeWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks-v1"])


@router.post("/stripe", response_model=WebhookResponse, response_model_exclude_none=True)
async def stripe_webhook(
    request: Request,
    service: StripeWebhookService = Depends(get_stripe_webhook_service),
) -> WebhookResponse:
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = service.verify_signature(payload, signature)
    except DomainException as e:
        raise e.to_http_exception()

    try:
        result = await asyncio.to_thread(service.handle_verified_event, event)
    except DomainException as e:
        if e.status_code < 500:
            raise e.to_http_exception()
        logger.error("Webhook %s failed: %s", event.get("id"), e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Webhook processing failed", "code": e.code},
        )

    return WebhookResponse(**result)
