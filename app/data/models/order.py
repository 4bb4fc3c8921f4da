from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.domain.enums import OrderStatus, PaymentMethod, PaymentStatus


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    shipping_phone = Column(String, nullable=False)
    shipping_street = Column(String, nullable=False)
    shipping_city = Column(String, nullable=False)
    shipping_state = Column(String, nullable=True)
    shipping_postal_code = Column(String, nullable=True)
    shipping_country = Column(String(2), nullable=False, default="EG")

    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    payment_status = Column(String, nullable=False, default=PaymentStatus.UNPAID.value)
    payment_method = Column(String, nullable=False, default=PaymentMethod.CASH_ON_DELIVERY.value)
    total_amount = Column(Numeric(10, 2), nullable=False)

    # card payments only
    payment_authorization_id = Column(String, nullable=True, unique=True)
    payment_client_secret = Column(String, nullable=True)
    payment_metadata = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )

    __table_args__ = (Index("ix_orders_user_status", "user_id", "status"),)
