from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .client import GoblinClient
from .config import Config
from .errors import GoblinError, ManifestError, NoMatchingArtifactError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    os: str
    arch: str
    file: str


@dataclass(frozen=True)
class Package:
    name: str
    version: str  # "latest" or a semantic version such as "v2.4.1"
    base_url: str
    artifacts: tuple[Artifact, ...] = ()

    def artifact_url(self, artifact: Artifact) -> str:
        return self.base_url + artifact.file


@dataclass(frozen=True)
class Manifest:
    packages: tuple[Package, ...] = ()

    def find(self, name: str) -> Package | None:
        wanted = name.strip().casefold()
        for pkg in self.packages:
            if pkg.name.casefold() == wanted:
                return pkg
        return None


def _str_field(obj: dict[str, Any], key: str, *, where: str) -> str:
    value = obj.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Unquoted YAML versions such as `version: 1.2` load as numbers.
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ManifestError(f"{where}: missing or invalid {key!r}")
    return value.strip()


def _parse_artifact(raw: Any, *, where: str) -> Artifact:
    if not isinstance(raw, dict):
        raise ManifestError(f"{where}: artifact must be a mapping")
    return Artifact(
        os=_str_field(raw, "os", where=where),
        arch=_str_field(raw, "arch", where=where),
        file=_str_field(raw, "file", where=where),
    )


def _parse_package(raw: Any, *, index: int) -> Package:
    if not isinstance(raw, dict):
        raise ManifestError(f"packages[{index}] must be a mapping")
    name = _str_field(raw, "name", where=f"packages[{index}]")
    where = f"package {name!r}"
    version = _str_field(raw, "version", where=where) if raw.get("version") is not None else "latest"
    base_url = raw.get("base_url") or ""
    if not isinstance(base_url, str):
        raise ManifestError(f"{where}: 'base_url' must be a string")

    artifacts_raw = raw.get("artifacts") or []
    if not isinstance(artifacts_raw, list):
        raise ManifestError(f"{where}: 'artifacts' must be a list")
    artifacts = tuple(_parse_artifact(a, where=where) for a in artifacts_raw)
    return Package(name=name, version=version, base_url=base_url.strip(), artifacts=artifacts)


def parse_manifest(text: str | bytes) -> Manifest:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"Manifest is not valid YAML: {e}") from e
    if data is None:
        return Manifest()
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a mapping with a 'packages' list")

    packages_raw = data.get("packages") or []
    if not isinstance(packages_raw, list):
        raise ManifestError("Manifest 'packages' must be a list")

    packages: list[Package] = []
    seen: set[str] = set()
    for i, raw in enumerate(packages_raw):
        pkg = _parse_package(raw, index=i)
        key = pkg.name.casefold()
        if key in seen:
            logger.warning("Duplicate manifest entry for %s ignored", pkg.name)
            continue
        seen.add(key)
        packages.append(pkg)
    return Manifest(packages=tuple(packages))


def load_manifest(path: Path) -> Manifest:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ManifestError(f"Manifest not found: {path}") from e
    except OSError as e:
        raise ManifestError(f"Could not read manifest {path}: {e}") from e
    return parse_manifest(text)


def _write_atomic(path: Path, data: bytes) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_bytes(data)
        tmp.replace(path)
    except OSError as e:
        raise ManifestError(f"Could not write manifest {path}: {e}") from e


def ensure_manifest(config: Config, client: GoblinClient) -> Path:
    """Download the manifest into its cache path unless a local copy already exists."""
    path = config.manifest_file
    if path.exists():
        return path
    logger.info("No local manifest at %s; fetching %s", path, config.manifest_url)
    try:
        data = client.get_bytes(config.manifest_url)
    except GoblinError as e:
        raise ManifestError(f"Could not download manifest from {config.manifest_url}: {e}") from e
    parse_manifest(data)
    _write_atomic(path, data)
    return path


def refresh_manifest(config: Config, client: GoblinClient) -> Path:
    """Replace the cached manifest with the remote copy, keeping the old one if the new one is invalid."""
    path = config.manifest_file
    try:
        data = client.get_bytes(config.manifest_url)
    except GoblinError as e:
        raise ManifestError(f"Could not download manifest from {config.manifest_url}: {e}") from e
    parse_manifest(data)
    _write_atomic(path, data)
    logger.info("Manifest refreshed from %s", config.manifest_url)
    return path


def select_artifact(package: Package, os: str, arch: str) -> Artifact:
    # First match in declaration order wins; several matches are not an error.
    for art in package.artifacts:
        if art.os.casefold() == os.casefold() and art.arch.casefold() == arch.casefold():
            return art
    raise NoMatchingArtifactError(f"No artifact for {package.name} on {os}/{arch}")
