"""Repository for users."""

import logging

from sqlalchemy.exc import IntegrityError

from .base import BaseRepository
from ..exceptions import AuthenticationError
from ..models.user import User

logger = logging.getLogger(__name__)


class _UserNotFound(AuthenticationError):
    def __init__(self, user_id):
        super().__init__(f"User not found: {user_id}")


class UserRepository(BaseRepository[User]):
    model_class = User
    not_found_error = _UserNotFound

    def get_or_create(self, user_id: int) -> User:
        """Return user *user_id*, inserting a non-premium row on first sight."""
        user = self.get_by_id_optional(user_id)
        if user is not None:
            return user
        user = User(id=user_id, display_name=f"user_{user_id}", is_premium=False)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the same user first.
            self.db.rollback()
            return self.get_by_id(user_id)
        self.db.refresh(user)
        logger.info("User created on first request", extra={"user_id": user_id})
        return user
