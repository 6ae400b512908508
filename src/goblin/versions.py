from __future__ import annotations

import re

UNKNOWN_VERSION = "unknown"
LATEST = "latest"

_LEADING_DIGITS_RE = re.compile(r"^\s*(\d+)")
# Multi-part extensions that a single suffix strip would cut in half.
_COMPOUND_EXTENSIONS = (".tar.gz", ".tar.bz2", ".tar.xz", ".tar.zst")


def _component(value: str) -> int:
    # Components without leading digits count as 0 rather than failing.
    m = _LEADING_DIGITS_RE.match(value)
    return int(m.group(1)) if m else 0


def _split_version(version: str) -> tuple[int, int, int]:
    raw = version.strip()
    if raw.startswith("v"):
        raw = raw[1:]
    parts = raw.split(".")
    while len(parts) < 3:
        parts.append("0")
    return _component(parts[0]), _component(parts[1]), _component(parts[2])


def compare_versions(a: str, b: str) -> int:
    """
    Order two ``vMAJOR.MINOR.PATCH`` strings, returning -1, 0 or 1.

    ``"unknown"`` sorts below everything else so that a package whose real
    version could not be determined is always considered out of date.
    """
    if a == UNKNOWN_VERSION and b == UNKNOWN_VERSION:
        return 0
    if a == UNKNOWN_VERSION:
        return -1
    if b == UNKNOWN_VERSION:
        return 1

    ma = _split_version(a)
    mb = _split_version(b)
    if ma < mb:
        return -1
    if ma > mb:
        return 1
    return 0


def _strip_extension(filename: str) -> str:
    lowered = filename.lower()
    for ext in _COMPOUND_EXTENSIONS:
        if lowered.endswith(ext):
            return filename[: -len(ext)]
    dot = filename.rfind(".")
    if dot <= 0:
        return filename
    # "tool-v1.2.0" has no extension; its last component is not one.
    if filename[dot + 1 :].isdigit():
        return filename
    return filename[:dot]


def version_from_filename(filename: str, package_name: str) -> str:
    basename = _strip_extension(filename)
    version_part = basename.replace(f"{package_name}-", "", 1)
    version_part = version_part.replace(package_name, "", 1)
    if version_part.startswith("v") or "." in version_part:
        return version_part
    return UNKNOWN_VERSION
