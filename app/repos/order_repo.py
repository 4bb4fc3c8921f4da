# app/repos/order_repo.py
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.data.models.order import OrderModel


class OrderRepo:
    """
    No commits here: the caller owns the transaction
    (order header + items + payment fields land together or not at all).
    """

    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()  #assigns order.id inside the open transaction
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
        ).scalar_one_or_none()

    def get_by_authorization_id(self, authorization_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_authorization_id == authorization_id)
        ).scalar_one_or_none()

    def list_for_user(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_page(self, page: int, per_page: int) -> Tuple[List[OrderModel], int]:
        total = self.db.execute(select(func.count(OrderModel.id))).scalar_one()
        orders = list(
            self.db.execute(
                select(OrderModel)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            ).scalars()
        )
        return orders, total

    def delete(self, order: OrderModel) -> None:
        self.db.delete(order)

    def refresh(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order
