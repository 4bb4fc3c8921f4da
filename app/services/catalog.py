# app/services/catalog.py
from decimal import Decimal
from typing import Dict, Iterable, Protocol

from sqlalchemy.orm import Session

from app.domain.cart import ProductInfo
from app.repos.product_repo import ProductRepo
from app.services.product_client import ProductClient
from app.utils.settings import CATALOG_BACKEND


class CatalogLookup(Protocol):
    def get_products_by_ids(self, ids: Iterable[int]) -> Dict[int, ProductInfo]:
        ...


class DbCatalog:
    """Catalog lookup against the local products table."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_products_by_ids(self, ids: Iterable[int]) -> Dict[int, ProductInfo]:
        return {
            p.id: ProductInfo(id=p.id, name=p.name, price=Decimal(p.price))
            for p in self.repo.get_active_by_ids(set(ids))
        }


def build_catalog(db: Session, backend: str | None = None) -> CatalogLookup:
    backend = backend or CATALOG_BACKEND
    if backend == "http":
        return ProductClient()
    if backend == "db":
        return DbCatalog(db)
    raise ValueError(f"Unknown catalog backend: {backend}")
