"""Per-directory metadata sidecar (currently just the folder color)."""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIDECAR_NAME = ".dirmeta.json"
_TEMP_PREFIX = ".dirmeta-"
DEFAULT_COLOR = "#1565C0"

_COLOR_RE = re.compile(r"^#[0-9A-F]{6}$")


def normalize_color(value: Optional[str], default: str = DEFAULT_COLOR) -> str:
    """Upper-cased ``#RRGGBB``; anything else falls back to *default*."""
    if isinstance(value, str):
        candidate = value.strip().upper()
        if _COLOR_RE.match(candidate):
            return candidate
    return default


def is_sidecar(name: str) -> bool:
    """True for the sidecar itself and for half-written temp files."""
    return name == SIDECAR_NAME or name.startswith(_TEMP_PREFIX)


class DirectoryMetadataStore:
    """Reads and writes ``.dirmeta.json`` inside a physical directory."""

    def __init__(self, default_color: str = DEFAULT_COLOR):
        self.default_color = normalize_color(default_color)

    def write_meta(self, directory: Union[str, Path], color: Optional[str] = None) -> str:
        """Atomically replace the sidecar of *directory*. Returns the stored color.

        The record goes to a temp file in the same directory first and is then
        renamed over the sidecar, so readers never see a partial file.
        """
        directory = Path(directory)
        stored = normalize_color(color, self.default_color)
        payload = json.dumps({"color": stored})

        fd, tmp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, directory / SIDECAR_NAME)
        except OSError:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        return stored

    def read_meta(self, directory: Union[str, Path]) -> dict:
        """Sidecar content of *directory*, or ``{}`` when missing or unreadable."""
        path = Path(directory) / SIDECAR_NAME
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.debug("Unreadable directory metadata", extra={"path": str(path), "error": str(exc)})
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Corrupt directory metadata", extra={"path": str(path)})
            return {}
        if not isinstance(data, dict):
            return {}
        if "color" in data:
            data["color"] = normalize_color(data.get("color"), self.default_color)
        return data

    def color_of(self, directory: Union[str, Path]) -> Optional[str]:
        return self.read_meta(directory).get("color")
