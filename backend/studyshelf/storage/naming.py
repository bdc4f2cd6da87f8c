"""Collision-free naming for physical files and directories.

Candidates are probed in order ``base``, ``base (2)``, ``base (3)``, ... with
the extension appended. The creating syscall itself is the collision check:
``mkdir`` without ``exist_ok`` for directories and ``O_CREAT | O_EXCL`` for
files. A racer that wins a name makes our attempt fail with
``FileExistsError`` and we move on to the next counter value, so concurrent
callers never need an external lock.
"""

import logging
import os
import shutil
from itertools import count, islice
from pathlib import Path
from typing import Callable, Iterator, Tuple, Union

from ..exceptions import RetryExhaustedError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 1000

PathLike = Union[str, Path]


def candidate_names(base_name: str, extension: str = "") -> Iterator[str]:
    """``base.ext``, ``base (2).ext``, ``base (3).ext``, ... (unbounded)."""
    yield f"{base_name}{extension}"
    for n in count(2):
        yield f"{base_name} ({n}){extension}"


def _reserve_file(path: Path) -> None:
    fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    os.close(fd)


def _reserve_directory(path: Path) -> None:
    path.mkdir()


class UniqueNameAllocator:
    """Allocates unused names under a parent directory.

    Every public method returns the absolute path it created. Attempts are
    bounded by ``max_attempts``; running out raises ``RetryExhaustedError``.
    Parents are never created here; a missing parent surfaces as
    ``FileNotFoundError``.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts

    def allocate(self, parent: PathLike, base_name: str, is_file: bool, extension: str = "") -> Path:
        """Reserve the first free candidate and return its path.

        Files are reserved as empty files, directories as empty directories.
        """
        reserve = _reserve_file if is_file else _reserve_directory
        return self._claim(Path(parent), base_name, extension if is_file else "", reserve)

    def create_directory(self, parent: PathLike, base_name: str) -> Path:
        return self.allocate(parent, base_name, is_file=False)

    def reserve_file(self, parent: PathLike, base_name: str, extension: str = "") -> Path:
        return self.allocate(parent, base_name, is_file=True, extension=extension)

    def write_file(self, parent: PathLike, base_name: str, extension: str, data: bytes) -> Path:
        target = self.allocate(parent, base_name, is_file=True, extension=extension)
        try:
            target.write_bytes(data)
        except OSError:
            _discard(target)
            raise
        return target

    def copy_file(self, source: PathLike, parent: PathLike, base_name: str, extension: str) -> Path:
        target = self.allocate(parent, base_name, is_file=True, extension=extension)
        try:
            shutil.copyfile(source, target)
        except OSError:
            _discard(target)
            raise
        return target

    def move_file(self, source: PathLike, parent: PathLike, base_name: str, extension: str) -> Path:
        """Move *source* to the first free ``base_name[ (n)]extension`` under *parent*.

        Moving a file onto its own current name is a no-op.
        """
        source = Path(source)
        parent = Path(parent)
        if source.parent == parent and source.name == f"{base_name}{extension}":
            return source
        target = self.allocate(parent, base_name, is_file=True, extension=extension)
        try:
            os.replace(source, target)
        except OSError:
            _discard(target)
            raise
        return target

    def move_file_pair(self, source: PathLike, companion: PathLike, parent: PathLike, base_name: str,
                       extension: str, companion_name: Callable[[str], str]) -> Tuple[Path, Path]:
        """Move *source* and its *companion* under *parent* with matching stems.

        ``companion_name(stem)`` gives the companion's file name for a stem. A
        candidate stem is taken only when both names could be reserved, so
        neither file ever replaces an existing one.
        """
        source = Path(source)
        companion = Path(companion)
        parent = Path(parent)
        if source.parent == parent and source.name == f"{base_name}{extension}":
            return source, companion
        for name in islice(candidate_names(base_name, extension), self.max_attempts):
            stem = name[:len(name) - len(extension)]
            target = parent / name
            companion_target = parent / companion_name(stem)
            try:
                _reserve_file(target)
            except FileExistsError:
                continue
            try:
                _reserve_file(companion_target)
            except FileExistsError:
                _discard(target)
                continue
            except OSError:
                _discard(target)
                raise
            try:
                os.replace(source, target)
            except OSError:
                _discard(target)
                _discard(companion_target)
                raise
            try:
                os.replace(companion, companion_target)
            except OSError:
                _discard(companion_target)
                raise
            if name != f"{base_name}{extension}":
                logger.debug("Name collision resolved", extra={"parent": str(parent), "allocated": name})
            return target, companion_target
        raise self._exhausted(parent, f"{base_name}{extension}")

    def move_directory(self, source: PathLike, parent: PathLike, base_name: str) -> Path:
        """Move a directory tree under *parent*, renaming on collision.

        The target is reserved with ``mkdir`` and then replaced by the source
        with ``rename``; POSIX replaces an empty directory atomically.
        """
        source = Path(source)
        parent = Path(parent)
        if source.parent == parent and source.name == base_name:
            return source
        _reject_move_into_self(source, parent)
        target = self.allocate(parent, base_name, is_file=False)
        return _rename_onto_reservation(source, target)

    def place_directory(self, source: PathLike, target: PathLike) -> Path:
        """Move a directory to exactly *target*, never renaming.

        Used where the destination name is dictated elsewhere (the DB tree).
        An occupied target raises ``FileExistsError`` and nothing is moved.
        """
        source = Path(source)
        target = Path(target)
        if source == target:
            return source
        _reject_move_into_self(source, target.parent)
        _reserve_directory(target)
        return _rename_onto_reservation(source, target)

    def _claim(self, parent: Path, base_name: str, extension: str,
               reserve: Callable[[Path], None]) -> Path:
        for name in islice(candidate_names(base_name, extension), self.max_attempts):
            target = parent / name
            try:
                reserve(target)
            except FileExistsError:
                continue
            if name != f"{base_name}{extension}":
                logger.debug("Name collision resolved", extra={"parent": str(parent), "allocated": name})
            return target
        raise self._exhausted(parent, f"{base_name}{extension}")

    def _exhausted(self, parent: Path, name: str) -> RetryExhaustedError:
        logger.error(
            "Unique name allocation exhausted",
            extra={"parent": str(parent), "base_name": name, "attempts": self.max_attempts},
        )
        return RetryExhaustedError(str(parent), name, self.max_attempts)


def _reject_move_into_self(source: Path, destination_parent: Path) -> None:
    src = source.resolve()
    dest = destination_parent.resolve()
    if dest == src or src in dest.parents:
        raise ValidationError("Cannot move a folder into itself or one of its subfolders", field="destination")


def _rename_onto_reservation(source: Path, target: Path) -> Path:
    try:
        os.rename(source, target)
    except OSError:
        _discard(target)
        raise
    return target


def _discard(reserved: Path) -> None:
    """Remove a reservation left behind by a failed write or move."""
    try:
        if reserved.is_dir() and not reserved.is_symlink():
            reserved.rmdir()
        else:
            reserved.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove name reservation", extra={"path": str(reserved), "error": str(exc)})
