"""Database models."""

from .user import User
from .directory import Directory
from .document import Document

__all__ = ["User", "Directory", "Document"]
