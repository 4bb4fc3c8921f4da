# app/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routers import admin_orders, carts, health, orders, users, webhooks
from app.domain.errors import (
    GatewayError,
    OrderNotFoundError,
    StoreUnavailableError,
    TransientLockError,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TransientLockError)
    async def lock_busy(request: Request, exc: TransientLockError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "retryable": True},
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_down(request: Request, exc: StoreUnavailableError):
        return JSONResponse(
            status_code=503,
            content={"detail": "Cart is temporarily unavailable", "retryable": True},
        )

    @app.exception_handler(OrderNotFoundError)
    async def order_missing(request: Request, exc: OrderNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(GatewayError)
    async def gateway_failed(request: Request, exc: GatewayError):
        logger.error(f"{request.method} {request.url.path} gateway error: {exc}")
        return JSONResponse(status_code=502, content={"detail": f"Payment processor error: {exc}"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shop Cart & Checkout Service",
        version="1.0.0",
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(admin_orders.router)
    app.include_router(webhooks.router)

    return app
