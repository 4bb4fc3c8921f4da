# app/api/routers/health.py
import redis
from fastapi import APIRouter, Depends

from app.api.deps import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
def health(client: redis.Redis = Depends(get_redis)):
    try:
        cart_store = "ok" if client.ping() else "down"
    except redis.RedisError:
        cart_store = "down"
    return {"status": "ok", "cart_store": cart_store}
