# product_service/main.py
from fastapi import FastAPI, HTTPException, Query

app = FastAPI(title="Product Service (dev mock)")

# prices as strings so they reach the cart service as exact decimals
PRODUCTS = {
    1: {"id": 1, "name": "Keyboard", "price": "199.99", "is_active": True},
    2: {"id": 2, "name": "Mouse", "price": "49.50", "is_active": True},
    3: {"id": 3, "name": "Monitor", "price": "899.00", "is_active": True},
    4: {"id": 4, "name": "Webcam", "price": "75.00", "is_active": False},
}


def _sellable(product_id: int):
    product = PRODUCTS.get(product_id)
    if product and product["is_active"]:
        return product
    return None


@app.get("/products")
def list_products(ids: str = Query("", description="Comma separated product ids")):
    """Batched lookup; unknown and inactive ids are left out of the result."""
    wanted = [int(i) for i in ids.split(",") if i.strip().isdigit()]
    return [p for p in (_sellable(i) for i in wanted) if p]


@app.get("/products/{product_id}")
def get_product(product_id: int):
    product = _sellable(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
