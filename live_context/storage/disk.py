from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from live_context.storage.base import StorageBackend

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")
_SUFFIX = ".json"


class DiskStorage(StorageBackend):
    """One file per key under a base directory.

    Writes go to a temporary file in the same directory and are moved
    into place, so a crash never leaves a half-written document.
    """

    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path).expanduser()
        self._base.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._base / f"{key}{_SUFFIX}"

    def read(self, key: str) -> str | None:
        path = self._resolve(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        path = self._resolve(key)
        fd, tmp = tempfile.mkstemp(dir=self._base, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._resolve(key).unlink(missing_ok=True)

    def list_keys(self) -> list[str]:
        return sorted(
            p.name[: -len(_SUFFIX)]
            for p in self._base.glob(f"*{_SUFFIX}")
            if p.is_file() and not p.name.startswith(".")
        )
