from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import CorruptLockFileError, FilesystemError

logger = logging.getLogger(__name__)

_ENTRY_FIELDS = ("name", "version", "resolved_from", "install_date", "os", "arch", "path")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class InstalledPackage:
    name: str
    version: str  # what was actually obtained
    resolved_from: str  # manifest version string when this entry was written
    install_date: str
    os: str
    arch: str
    path: str


@dataclass
class LockFile:
    packages: list[InstalledPackage] = field(default_factory=list)

    def _index(self, name: str) -> int | None:
        wanted = name.strip().casefold()
        for i, entry in enumerate(self.packages):
            if entry.name.casefold() == wanted:
                return i
        return None

    def get(self, name: str) -> InstalledPackage | None:
        idx = self._index(name)
        return None if idx is None else self.packages[idx]

    def upsert(self, entry: InstalledPackage) -> None:
        idx = self._index(entry.name)
        if idx is None:
            self.packages.append(entry)
        else:
            self.packages[idx] = entry

    def remove(self, name: str) -> bool:
        idx = self._index(name)
        if idx is None:
            return False
        del self.packages[idx]
        return True

    def names(self) -> list[str]:
        return [p.name for p in self.packages]


def _parse_entry(raw: Any, *, index: int, path: Path) -> InstalledPackage:
    if not isinstance(raw, dict):
        raise CorruptLockFileError(f"{path}: packages[{index}] is not an object")
    values: dict[str, str] = {}
    for key in _ENTRY_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str):
            raise CorruptLockFileError(f"{path}: packages[{index}] has no valid {key!r}")
        values[key] = value
    return InstalledPackage(**values)


class LockStore:
    """
    Owns the lock file on disk.

    Writes go through a temporary sibling file that is renamed over the real
    one, so a reader never sees a truncated document. There is no locking
    between processes; two concurrent runs against the same file may race.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> LockFile:
        if not self.path.exists():
            return LockFile()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptLockFileError(f"Lock file {self.path} is unreadable: {e}") from e
        if not isinstance(raw, dict):
            raise CorruptLockFileError(f"Lock file {self.path} must contain an object")

        items = raw.get("packages")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise CorruptLockFileError(f"Lock file {self.path}: 'packages' must be a list")

        lock = LockFile()
        for i, item in enumerate(items):
            entry = _parse_entry(item, index=i, path=self.path)
            if lock.get(entry.name) is not None:
                raise CorruptLockFileError(f"Lock file {self.path} lists {entry.name!r} more than once")
            lock.packages.append(entry)
        logger.debug("Loaded %d lock entries from %s", len(lock.packages), self.path)
        return lock

    def save(self, lock: LockFile) -> None:
        payload = {"packages": [asdict(p) for p in lock.packages]}
        data = json.dumps(payload, indent=2) + "\n"
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(self.path)
        except OSError as e:
            raise FilesystemError(f"Could not write lock file {self.path}: {e}") from e
        logger.debug("Saved %d lock entries to %s", len(lock.packages), self.path)
