# app/api/routers/admin_orders.py
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_lifecycle_service, get_order_service
from app.domain.schemas import OrderOut, OrderPage, OrderStatusUpdate
from app.services.order_lifecycle import OrderLifecycleService
from app.services.order_service import OrderService

router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("/", response_model=OrderPage)
def list_orders(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    svc: OrderService = Depends(get_order_service),
):
    orders, total = svc.list_all(page, per_page)
    return {"data": orders, "page": page, "per_page": per_page, "total": total}


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, svc: OrderService = Depends(get_order_service)):
    return svc.get_order_admin(order_id)


@router.patch("/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    payload: OrderStatusUpdate,
    svc: OrderLifecycleService = Depends(get_lifecycle_service),
):
    """
    Status and/or payment status. delivered also marks the order paid,
    canceled schedules its deletion.
    """
    if payload.status is None and payload.payment_status is None:
        raise HTTPException(status_code=400, detail="Nothing to update")
    try:
        return svc.transition_status(order_id, payload.status, payload.payment_status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
