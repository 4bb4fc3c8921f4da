# app/services/user_service.py
from sqlalchemy.orm import Session

from app.data.models.user import UserModel
from app.domain.schemas import UserCreate, UserRead
from app.repos.user_repo import UserRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """
    Registration of customers. The id comes from the upstream identity
    provider, so registering the same id again is a no-op; the email is the
    payer identity sent to the payment processor and must be unique.
    """

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        known = self.repo.get_user(payload.id)
        if known:
            return UserRead.model_validate(known)

        taken = self.repo.get_by_email(payload.email)
        if taken:
            logger.warning(f"Email {payload.email} already belongs to user {taken.id}")
            raise ValueError("Email already registered")

        user = self.repo.add_customer(
            UserModel(id=payload.id, name=payload.name, email=payload.email)
        )
        logger.info(f"Registered customer {user.id}")
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if user is None:
            raise ValueError("User not found")
        return UserRead.model_validate(user)
