from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .binaries import binary_name, place_binary, remove_binary, restore_binary, stash_binary
from .config import Config
from .errors import RECOVERABLE_ERRORS, FilesystemError, GoblinError, UnknownPackageError
from .lockfile import InstalledPackage, LockStore, utc_timestamp
from .manifest import Manifest, Package, select_artifact
from .reconcile import ERROR, SKIP, Decision, Reconciler
from .transfer import Transfer

logger = logging.getLogger(__name__)

REMOVE = "remove"
STAGING_DIRNAME = ".goblin-tmp"


@dataclass(frozen=True)
class Outcome:
    name: str
    action: str
    previous_version: str | None = None
    new_version: str | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.action != ERROR


class PackageManager:
    """
    Entry points for install, update, sync, remove and list.

    The lock file is read once when the manager is created. Every package that
    changes state is written back immediately afterwards, so a batch that dies
    halfway leaves the packages already processed recorded and the rest as
    they were.
    """

    def __init__(
        self,
        *,
        config: Config,
        store: LockStore,
        transfer: Transfer,
        manifest: Manifest | None = None,
        path_exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        self.config = config
        self.store = store
        self.transfer = transfer
        self.manifest = manifest if manifest is not None else Manifest()
        self._path_exists = path_exists
        self.reconciler = Reconciler(path_exists=path_exists)
        self.lock = store.load()

    def install(self, name: str) -> Outcome:
        # Installing something already present reinstalls it.
        decision = self.reconciler.decide(name, manifest=self.manifest, lock=self.lock, force=True)
        return self._apply(decision)

    def update(self, name: str, *, force: bool = False) -> Outcome:
        decision = self.reconciler.decide(name, manifest=self.manifest, lock=self.lock, force=force)
        return self._apply(decision)

    def update_all(self, *, force: bool = False) -> list[Outcome]:
        outcomes: list[Outcome] = []
        for name in self.lock.names():
            logger.info("Checking %s for updates", name)
            outcomes.append(self.update(name, force=force))
        return outcomes

    def missing(self) -> list[InstalledPackage]:
        """Lock entries whose binary is no longer on disk."""
        return [entry for entry in self.lock.packages if not self._path_exists(entry.path)]

    def sync(self) -> list[Outcome]:
        outcomes: list[Outcome] = []
        for entry in self.missing():
            logger.info("Binary missing for %s, reinstalling", entry.name)
            decision = self.reconciler.decide(entry.name, manifest=self.manifest, lock=self.lock)
            outcomes.append(self._apply(decision))
        return outcomes

    def remove(self, name: str) -> Outcome:
        entry = self.lock.get(name)
        if entry is None:
            raise UnknownPackageError(f"Package {name!r} is not installed")

        path = Path(entry.path)
        backup = path.with_name(path.name + ".goblin-old")
        stashed = stash_binary(path, backup)
        if not stashed:
            logger.info("Binary for %s was already gone: %s", entry.name, entry.path)
        self.lock.remove(entry.name)
        try:
            self.store.save(self.lock)
        except GoblinError:
            self.lock.upsert(entry)
            if stashed:
                restore_binary(path, backup, stashed=True)
            raise
        if stashed:
            remove_binary(backup)
        return Outcome(entry.name, REMOVE, previous_version=entry.version, message="removed")

    def list_installed(self) -> list[InstalledPackage]:
        return list(self.lock.packages)

    def _apply(self, decision: Decision) -> Outcome:
        previous = decision.entry.version if decision.entry else None
        if decision.action == ERROR:
            return Outcome(decision.name, ERROR, previous_version=previous, message=decision.reason)
        if decision.action == SKIP:
            return Outcome(decision.name, SKIP, previous_version=previous, new_version=previous, message=decision.reason)

        if decision.package is None:
            raise GoblinError(f"No manifest entry to {decision.action} {decision.name}")
        try:
            installed = self._install(decision.package)
        except RECOVERABLE_ERRORS as e:
            logger.warning("%s of %s failed: %s", decision.action, decision.name, e)
            return Outcome(decision.name, ERROR, previous_version=previous, message=str(e))
        return Outcome(
            installed.name,
            decision.action,
            previous_version=previous,
            new_version=installed.version,
            message=decision.reason,
        )

    def _install(self, pkg: Package) -> InstalledPackage:
        artifact = select_artifact(pkg, self.config.os, self.config.arch)
        url = pkg.artifact_url(artifact)
        bin_dir = self.config.bin_path
        logger.info("Downloading %s (%s) for %s/%s from %s", pkg.name, pkg.version, self.config.os, self.config.arch, url)

        staging_root = bin_dir / STAGING_DIRNAME
        try:
            staging_root.mkdir(parents=True, exist_ok=True)
            staging = tempfile.TemporaryDirectory(prefix="goblin-", dir=staging_root)
        except OSError as e:
            raise FilesystemError(f"Could not prepare download directory in {bin_dir}: {e}") from e

        # The existing binary is only replaced once the download completed, and
        # only stays replaced once the lock file recorded the new one.
        with staging as td:
            filename = Path(artifact.file).name or pkg.name
            download = Path(td) / filename
            observed = self.transfer.fetch(
                url,
                download,
                package_name=pkg.name,
                declared_version=pkg.version,
                filename=filename,
            )
            target = (bin_dir / binary_name(pkg.name, self.config.os)).absolute()
            backup = Path(td) / ".goblin-previous"
            stashed = stash_binary(target, backup)
            try:
                path = place_binary(download, bin_dir, target.name)
            except GoblinError:
                if stashed:
                    restore_binary(target, backup, stashed=True)
                raise

            entry = InstalledPackage(
                name=pkg.name,
                version=observed,
                resolved_from=pkg.version,
                install_date=utc_timestamp(),
                os=self.config.os,
                arch=self.config.arch,
                path=str(path),
            )
            previous = self.lock.get(pkg.name)
            self.lock.upsert(entry)
            try:
                self.store.save(self.lock)
            except GoblinError:
                if previous is None:
                    self.lock.remove(pkg.name)
                else:
                    self.lock.upsert(previous)
                restore_binary(path, backup, stashed=stashed)
                raise
        logger.info("Recorded %s %s in %s", pkg.name, observed, self.store.path)
        return entry
