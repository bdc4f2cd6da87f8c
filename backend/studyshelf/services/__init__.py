"""Business logic services."""

from .directory_service import DirectoryService
from .document_service import DocumentService
from .hierarchy import HierarchyPathTranslator
from .storage_mode import StorageMode, resolve_storage_mode

__all__ = [
    "DirectoryService",
    "DocumentService",
    "HierarchyPathTranslator",
    "StorageMode",
    "resolve_storage_mode",
]
