"""Document model: an uploaded PDF tracked in DB mode."""

from sqlalchemy import Column, Index, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..database import Base


class Document(Base):
    """Uploaded document.

    ``stored_filename`` names the canonical backing copy in the uploads
    directory. The mirror copy ``<display stem>.pdf`` and the optional
    ``Resumen_<display stem>.txt`` live under the path derived from
    ``directory_id``; neither location is stored.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_user_directory", "user_id", "directory_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    directory_id = Column(Integer, ForeignKey("directories.id", ondelete="CASCADE"), nullable=True)
    original_filename = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False)
    stored_filename = Column(String(255), nullable=False, unique=True)
    mime_type = Column(String(100), nullable=False, default="application/pdf")
    size_bytes = Column(Integer, nullable=False, default=0)
    text_content = Column(Text, nullable=True)
    model_used = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
