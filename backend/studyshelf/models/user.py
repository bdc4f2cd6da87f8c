"""User model.

Users are created on first authenticated request. ``is_premium`` is the single
explicit column deciding DB mode when ``STORAGE_MODE_POLICY=per_user``.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """Account owning one sandbox root and, in DB mode, one directory forest."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=True)
    display_name = Column(String(255), nullable=False, default="Student")
    is_premium = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
