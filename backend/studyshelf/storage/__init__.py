"""Physical storage layer: sandboxed per-user trees on local disk."""

from dataclasses import dataclass
from pathlib import Path

from ..core.config import Settings, settings
from .metadata import DirectoryMetadataStore
from .naming import UniqueNameAllocator
from .sandbox import UserRootResolver
from .walker import FilesystemTreeWalker


@dataclass
class PhysicalStore:
    """The storage collaborators one request works with."""
    resolver: UserRootResolver
    allocator: UniqueNameAllocator
    metadata: DirectoryMetadataStore
    walker: FilesystemTreeWalker
    uploads_dir: Path


def build_store(config: Settings) -> PhysicalStore:
    resolver = UserRootResolver(config.storage_root_path)
    metadata = DirectoryMetadataStore(config.default_folder_color)
    uploads_dir = config.uploads_path
    uploads_dir.mkdir(parents=True, exist_ok=True)
    return PhysicalStore(
        resolver=resolver,
        allocator=UniqueNameAllocator(config.unique_name_max_attempts),
        metadata=metadata,
        walker=FilesystemTreeWalker(resolver, metadata, config.tree_max_depth),
        uploads_dir=uploads_dir,
    )


def default_store() -> PhysicalStore:
    """Store built from the global settings (used as a FastAPI dependency)."""
    return build_store(settings)


__all__ = [
    "PhysicalStore",
    "build_store",
    "default_store",
    "DirectoryMetadataStore",
    "UniqueNameAllocator",
    "UserRootResolver",
    "FilesystemTreeWalker",
]
