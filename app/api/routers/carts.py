#app/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Response

from app.api.deps import get_cart_key, get_cart_service, get_identity
from app.domain.cart import CartKey, IdentityContext
from app.domain.schemas import CartOut, CartTTLOut, ItemIn, ItemUpdate, MergeOut
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/", response_model=CartOut)
def get_cart(
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_snapshot(key).to_dict()


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    if not svc.catalog.get_products_by_ids([payload.product_id]):
        raise HTTPException(status_code=404, detail="Product not found")

    svc.add(key, payload.product_id, payload.quantity)
    return svc.get_snapshot(key).to_dict()


@router.patch("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: ItemUpdate,
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    svc.update(key, product_id, payload.quantity)
    return svc.get_snapshot(key).to_dict()


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    svc.remove(key, product_id)
    return svc.get_snapshot(key).to_dict()


@router.delete("/", status_code=204)
def clear_cart(
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    svc.clear(key)
    return Response(status_code=204)


@router.get("/ttl", response_model=CartTTLOut)
def get_ttl(
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    return {"cart_key": key.value, "ttl": svc.get_ttl(key), "exists": svc.exists(key)}


@router.post("/extend", response_model=CartTTLOut)
def extend_cart(
    key: CartKey = Depends(get_cart_key),
    svc: CartService = Depends(get_cart_service),
):
    if not svc.extend_expiration(key):
        raise HTTPException(status_code=404, detail="Cart not found")
    return {"cart_key": key.value, "ttl": svc.get_ttl(key), "exists": True}


@router.post("/merge", response_model=MergeOut)
def merge_guest_cart(
    identity: IdentityContext = Depends(get_identity),
    svc: CartService = Depends(get_cart_service),
):
    """
    Called right after login, with both the new user id and the
    session id the guest cart was kept under.
    """
    if not identity.is_authenticated or not identity.session_id:
        raise HTTPException(status_code=400, detail="Both X-User-Id and X-Session-Id are required")

    merged = svc.merge_guest_cart(identity.session_id, identity.user_id)
    return {
        "merged_lines": merged,
        "cart": svc.get_snapshot(CartKey.for_user(identity.user_id)).to_dict(),
    }
