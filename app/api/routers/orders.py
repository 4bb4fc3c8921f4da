# app/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_lifecycle_service, get_order_service, get_user_id
from app.domain.errors import EmptyCartError, GatewayError
from app.domain.schemas import OrderCreate, OrderOut, PaymentConfirmationOut
from app.services.order_lifecycle import OrderLifecycleService
from app.services.order_service import OrderService
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user_id: int = Depends(get_user_id),
    svc: OrderService = Depends(get_order_service),
):
    """
    Checkout: turns the caller's cart into an order.
    Card orders carry payment_client_secret for the client-side payment step.
    """
    try:
        return svc.create_order(user_id, payload)
    except EmptyCartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GatewayError as e:
        logger.error(f"Checkout for user {user_id} failed at payment: {e}")
        raise HTTPException(status_code=502, detail=f"Payment processing failed: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/", response_model=List[OrderOut])
def list_orders(
    user_id: int = Depends(get_user_id),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_orders(user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Depends(get_user_id),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.get_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    user_id: int = Depends(get_user_id),
    svc: OrderLifecycleService = Depends(get_lifecycle_service),
):
    try:
        return svc.cancel(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Failed to cancel order: {e}")


@router.post("/{order_id}/confirm-payment", response_model=PaymentConfirmationOut)
def confirm_payment(
    order_id: int,
    user_id: int = Depends(get_user_id),
    svc: OrderLifecycleService = Depends(get_lifecycle_service),
):
    try:
        result = svc.confirm_payment(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    return {
        "confirmed": result.confirmed,
        "payment_status": result.payment_status,
        "order": result.order,
    }
