# app/repos/product_repo.py
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_active_by_ids(self, ids: Iterable[int]) -> List[ProductModel]:
        ids = list(ids)
        if not ids:
            return []
        return list(
            self.db.execute(
                select(ProductModel).where(
                    ProductModel.id.in_(ids),
                    ProductModel.is_active.is_(True),
                )
            ).scalars()
        )
