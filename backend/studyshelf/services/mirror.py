"""Execution of physical side effects under the two storage modes.

In mirrored mode the database has already committed when a physical step
runs, so a failure there is logged and reported as ``synced=False`` while
the request still succeeds. In physical-only mode the disk is the only
record, so the same failure becomes ``MirrorWriteError``.
"""

import logging
from typing import Any, Callable, NamedTuple, Optional

from ..exceptions import MirrorWriteError, RetryExhaustedError
from .storage_mode import StorageMode

logger = logging.getLogger(__name__)


class MirrorOutcome(NamedTuple):
    value: Optional[Any]
    synced: bool


def run_physical(operation: str, path: str, fn: Callable[[], Any]) -> Any:
    """Run *fn*; any ``OSError`` becomes ``MirrorWriteError``."""
    try:
        return fn()
    except OSError as exc:
        logger.error(
            "Filesystem operation failed",
            extra={"operation": operation, "path": path, "error": str(exc)},
        )
        raise MirrorWriteError(operation, path, exc) from exc


def run_mirror(mode: StorageMode, operation: str, path: str, fn: Callable[[], Any]) -> MirrorOutcome:
    if mode is not StorageMode.MIRRORED:
        return MirrorOutcome(run_physical(operation, path, fn), True)
    try:
        return MirrorOutcome(fn(), True)
    except (OSError, RetryExhaustedError) as exc:
        logger.warning(
            "Mirror write failed; database state kept",
            extra={"operation": operation, "path": path, "error": str(exc)},
        )
        return MirrorOutcome(None, False)
