"""Directory model: per-user adjacency-list folder tree."""

from sqlalchemy import Column, Index, Integer, String, DateTime, ForeignKey, UniqueConstraint, text
from sqlalchemy.sql import func
from ..database import Base

# Name of the sibling uniqueness constraint; matched when translating
# IntegrityError into a Conflict.
SIBLING_UNIQUE_CONSTRAINT = "uniq_dir_name_per_parent"
ROOT_UNIQUE_INDEX = "uniq_dir_name_at_root"


class Directory(Base):
    """A folder in a user's DB tree.

    ``parent_id`` is NULL for top-level folders. SQL treats NULLs as distinct,
    so top-level uniqueness needs the partial index in addition to the
    (user_id, parent_id, name) constraint.
    """

    __tablename__ = "directories"
    __table_args__ = (
        UniqueConstraint("user_id", "parent_id", "name", name=SIBLING_UNIQUE_CONSTRAINT),
        Index(
            ROOT_UNIQUE_INDEX,
            "user_id",
            "name",
            unique=True,
            sqlite_where=text("parent_id IS NULL"),
            postgresql_where=text("parent_id IS NULL"),
        ),
        Index("ix_directories_user_parent", "user_id", "parent_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Integer, ForeignKey("directories.id", ondelete="CASCADE"), nullable=True)
    name = Column(String(255), nullable=False)
    color_hex = Column(String(7), nullable=False, default="#1565C0")
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
