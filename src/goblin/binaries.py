from __future__ import annotations

import os
import stat
from pathlib import Path

from .errors import FilesystemError

EXECUTABLE_MODE = stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH


def binary_name(package_name: str, os_name: str) -> str:
    if os_name == "windows" and not package_name.lower().endswith(".exe"):
        return package_name + ".exe"
    return package_name


def place_binary(source: Path, bin_dir: Path, name: str) -> Path:
    """Move a downloaded artifact into ``bin_dir/name``, mark it executable and return its absolute path."""
    try:
        bin_dir.mkdir(parents=True, exist_ok=True)
        target = (bin_dir / name).absolute()
        os.replace(source, target)
        os.chmod(target, EXECUTABLE_MODE)
    except OSError as e:
        raise FilesystemError(f"Could not install {name} into {bin_dir}: {e}") from e
    return target


def remove_binary(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FilesystemError(f"Could not remove {path}: {e}") from e
    return True


def stash_binary(path: Path, backup: Path) -> bool:
    """Move an existing binary to ``backup``. Returns False when there was nothing to move."""
    try:
        os.replace(path, backup)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FilesystemError(f"Could not move {path} aside: {e}") from e
    return True


def restore_binary(path: Path, backup: Path, *, stashed: bool) -> None:
    # Undo place_binary: bring the stashed binary back, or drop the new one.
    if not stashed:
        remove_binary(path)
        return
    try:
        os.replace(backup, path)
    except OSError as e:
        raise FilesystemError(f"Could not restore {path}: {e}") from e
