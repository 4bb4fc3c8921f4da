# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from app.domain.enums import OrderStatus, PaymentMethod, PaymentStatus


class ItemIn(BaseModel):
    """Add a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product id (> 0)")
    quantity: int = Field(1, ge=1, description="How many to add (>= 1)")


class ItemUpdate(BaseModel):
    """Set the absolute quantity, 0 removes the product."""

    quantity: int = Field(..., ge=0, description="New quantity (>= 0)")


class CartLineOut(BaseModel):
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CartOut(BaseModel):
    items: List[CartLineOut]
    total: Decimal
    item_count: int


class CartTTLOut(BaseModel):
    cart_key: str
    ttl: int
    exists: bool


class MergeOut(BaseModel):
    merged_lines: int
    cart: CartOut


class UserCreate(BaseModel):
    id: int = Field(..., gt=0, description="User id (> 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr


class UserRead(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class OrderCreate(BaseModel):
    """Checkout input: shipping details and how the customer pays."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    shipping_phone: str = Field(..., min_length=3, max_length=30)
    shipping_street: str = Field(..., min_length=1, max_length=255)
    shipping_city: str = Field(..., min_length=1, max_length=100)
    shipping_state: Optional[str] = Field(None, max_length=100)
    shipping_postal_code: Optional[str] = Field(None, max_length=20)
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    shipping_phone: str
    shipping_street: str
    shipping_city: str
    shipping_state: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: str
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    total_amount: Decimal
    payment_client_secret: Optional[str] = None
    items: List[OrderItemOut] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderSummaryOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    total_amount: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderPage(BaseModel):
    data: List[OrderSummaryOut]
    page: int
    per_page: int
    total: int


class OrderStatusUpdate(BaseModel):
    """Admin edit: status and/or payment status."""

    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class PaymentConfirmationOut(BaseModel):
    confirmed: bool
    payment_status: PaymentStatus
    order: OrderOut


class WebhookAck(BaseModel):
    status: str
    message: str
