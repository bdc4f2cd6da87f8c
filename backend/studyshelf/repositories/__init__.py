"""Data access repositories."""

from .base import BaseRepository
from .directory_repository import DirectoryRepository
from .document_repository import DocumentRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "DirectoryRepository",
    "DocumentRepository",
    "UserRepository",
]
