# app/services/product_client.py
from decimal import Decimal
from typing import Dict, Iterable

import requests

from app.domain.cart import ProductInfo
from app.utils.retry import http_retry
from app.utils.settings import PRODUCT_SERVICE_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """Catalog lookup over HTTP against the product-service."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def fetch_products(self, ids: list[int]) -> list[dict]:
        url = f"{self.base_url}/products"
        logger.info(f"ProductClient GET {url} ids={ids}")

        resp = requests.get(
            url,
            params={"ids": ",".join(str(i) for i in ids)},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def get_products_by_ids(self, ids: Iterable[int]) -> Dict[int, ProductInfo]:
        ids = sorted(set(ids))
        if not ids:
            return {}

        #unknown ids are simply absent from the response
        return {
            int(p["id"]): ProductInfo(
                id=int(p["id"]),
                name=p["name"],
                price=Decimal(str(p["price"])),
            )
            for p in self.fetch_products(ids)
        }
