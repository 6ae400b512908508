from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from .client import GoblinClient
from .versions import UNKNOWN_VERSION, version_from_filename

logger = logging.getLogger(__name__)

VERSION_HEADER = "X-Version"


class Transfer(Protocol):
    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        package_name: str,
        declared_version: str,
        filename: str,
    ) -> str:
        """Copy ``url`` to ``destination`` and return the version that was actually obtained."""
        ...


def resolve_observed_version(
    *,
    header_version: str | None,
    filename: str,
    package_name: str,
    declared_version: str,
) -> str:
    if header_version and header_version.strip():
        return header_version.strip()
    sniffed = version_from_filename(filename, package_name)
    if sniffed != UNKNOWN_VERSION:
        return sniffed
    return declared_version


class HttpTransfer:
    def __init__(self, client: GoblinClient) -> None:
        self._client = client

    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        package_name: str,
        declared_version: str,
        filename: str,
    ) -> str:
        headers = self._client.download(url, destination)
        version = resolve_observed_version(
            header_version=headers.get(VERSION_HEADER),
            filename=filename,
            package_name=package_name,
            declared_version=declared_version,
        )
        logger.debug("Observed version %s for %s", version, package_name)
        return version
