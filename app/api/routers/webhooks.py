# app/api/routers/webhooks.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_lifecycle_service, get_payment_gateway
from app.domain.errors import GatewayError
from app.domain.schemas import WebhookAck
from app.services.order_lifecycle import OrderLifecycleService
from app.services.payment_gateway import PaymentGateway
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    svc: OrderLifecycleService = Depends(get_lifecycle_service),
):
    """Processor callback: payment succeeded / failed / requires action."""
    payload = await request.body()
    try:
        event = gateway.parse_event(payload, stripe_signature)
    except GatewayError as e:
        logger.warning(f"Rejected webhook: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    order = await run_in_threadpool(svc.apply_gateway_event, event)
    if order is None:
        return {"status": "ignored", "message": f"No order updated for {event.type}"}
    return {"status": "success", "message": f"Order {order.id} payment is {order.payment_status}"}
