"""Which representation is authoritative for a user."""

from enum import Enum

from ..core.config import StorageModePolicy
from ..models.user import User


class StorageMode(str, Enum):
    """``mirrored``: DB tree authoritative, disk is a best-effort mirror.
    ``physical-only``: the sandbox directory tree is the only record."""
    MIRRORED = "mirrored"
    PHYSICAL_ONLY = "physical-only"


def resolve_storage_mode(user: User, policy: StorageModePolicy) -> StorageMode:
    if policy == StorageModePolicy.MIRRORED:
        return StorageMode.MIRRORED
    if policy == StorageModePolicy.PHYSICAL_ONLY:
        return StorageMode.PHYSICAL_ONLY
    return StorageMode.MIRRORED if user.is_premium else StorageMode.PHYSICAL_ONLY
