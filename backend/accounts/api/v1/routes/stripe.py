# accounts/api/v1/routes/stripe.py
from fastapi import APIRouter, Depends, Header, Request
from typing import Optional
from accounts.core.config import settings
from accounts.core.dependencies import get_event_handler
from accounts.core.exceptions import AppException
from accounts.services.subscription_service import StripeEventHandler, read_stripe_event
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])

MAX_BODY_BYTES = 65536


class PayloadTooLargeError(AppException):
    def __init__(self):
        super().__init__(413, f"request body exceeds {MAX_BODY_BYTES} bytes")


async def _read_body(request: Request) -> bytes:
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > MAX_BODY_BYTES:
            raise PayloadTooLargeError()
    return bytes(body)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    handler: StripeEventHandler = Depends(get_event_handler),
):
    """Вебхук Stripe: события подписок пересчитывают тариф пользователя"""
    payload = await _read_body(request)
    event = read_stripe_event(payload, stripe_signature, settings.stripe)
    await handler.handle(event)
    return {"received": True}
