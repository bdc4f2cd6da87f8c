"""Pydantic schemas for API validation."""

from .storage import (
    FsTreeNode,
    DocumentEntry,
    DirectoryNode,
    DirectoryListing,
    StorageResult,
    SummaryResponse,
    DirectoryCreate,
    DirectoryMove,
    DirectoryRename,
    DirectoryDelete,
    DocumentMove,
    DocumentDelete,
    SummarySave,
)

__all__ = [
    "FsTreeNode",
    "DocumentEntry",
    "DirectoryNode",
    "DirectoryListing",
    "StorageResult",
    "SummaryResponse",
    "DirectoryCreate",
    "DirectoryMove",
    "DirectoryRename",
    "DirectoryDelete",
    "DocumentMove",
    "DocumentDelete",
    "SummarySave",
]
