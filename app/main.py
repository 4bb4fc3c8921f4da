# app/main.py
from app.api import create_app
from app.data.database import Base, engine
from app.utils.logging import get_logger
import uvicorn

logger = get_logger(__name__)

# import every model before create_all
from app.data.models import UserModel, ProductModel, OrderModel, OrderItemModel  # noqa: F401


def init_db() -> None:
    logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info("Database tables ready")


init_db()
app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
