# app/repos/user_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.user import UserModel


class UserRepo:
    """Customers that checkout charges against."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.email == email)
        ).scalar_one_or_none()

    def add_customer(self, user: UserModel) -> UserModel:
        #registration is its own unit of work, unlike the order writes
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
