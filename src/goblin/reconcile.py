from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable

from .lockfile import InstalledPackage, LockFile
from .manifest import Manifest, Package
from .versions import LATEST, compare_versions

logger = logging.getLogger(__name__)

INSTALL = "install"
UPDATE = "update"
SKIP = "skip"
REPAIR = "repair"
ERROR = "error"

ACTIONS = (INSTALL, UPDATE, SKIP, REPAIR, ERROR)


@dataclass(frozen=True)
class Decision:
    name: str
    action: str
    reason: str
    package: Package | None = None
    entry: InstalledPackage | None = None

    @property
    def needs_install(self) -> bool:
        return self.action in (INSTALL, UPDATE, REPAIR)


def _default_exists(path: str) -> bool:
    return os.path.exists(path)


class Reconciler:
    """
    Decides what to do with one package by comparing the manifest (desired
    state) with the lock file (observed state) and the filesystem.

    Only the lock file is trusted as a record of what is installed: a binary
    sitting in the bin directory without a lock entry counts as absent.
    """

    def __init__(self, *, path_exists: Callable[[str], bool] = _default_exists) -> None:
        self._path_exists = path_exists

    def decide(self, name: str, *, manifest: Manifest, lock: LockFile, force: bool = False) -> Decision:
        pkg = manifest.find(name)
        entry = lock.get(name)
        display = pkg.name if pkg else entry.name if entry else name

        if pkg is None:
            decision = Decision(display, ERROR, f"Package {display!r} is not declared in the manifest", entry=entry)
        elif entry is None:
            decision = Decision(display, INSTALL, "not installed", pkg)
        elif not self._path_exists(entry.path):
            decision = Decision(display, REPAIR, f"binary missing at {entry.path}", pkg, entry)
        elif pkg.version == LATEST:
            decision = Decision(display, UPDATE, "manifest tracks latest", pkg, entry)
        elif force:
            decision = Decision(display, UPDATE, "forced", pkg, entry)
        elif pkg.version != entry.resolved_from and compare_versions(entry.version, pkg.version) < 0:
            decision = Decision(
                display,
                UPDATE,
                f"manifest moved from {entry.resolved_from} to {pkg.version}",
                pkg,
                entry,
            )
        else:
            decision = Decision(display, SKIP, f"already up to date ({entry.version})", pkg, entry)

        logger.debug("Decision for %s: %s (%s)", display, decision.action, decision.reason)
        return decision
