# app/data/seed.py
from decimal import Decimal

from app.data.database import SessionLocal
from app.data.models import ProductModel, UserModel
from app.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    (1, "Keyboard", Decimal("199.99")),
    (2, "Mouse", Decimal("49.50")),
    (3, "Monitor", Decimal("899.00")),
]


def seed():
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return
        db.add_all(ProductModel(id=pid, name=name, price=price) for pid, name, price in PRODUCTS)
        db.add(UserModel(id=1, name="Demo Customer", email="demo@example.com"))
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products and a demo customer")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
