from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

from platformdirs import user_config_path

DEFAULT_MANIFEST_URL = "https://raw.githubusercontent.com/Alexandre1a/goblin-remote/refs/heads/main/sources.yaml"
DEFAULT_TIMEOUT_S = 30.0

HOME_DIRNAME = ".goblin"
BIN_DIRNAME = "bin"
MANIFEST_DIRNAME = "manifest"
MANIFEST_FILENAME = "sources.yaml"
LOCK_FILENAME = "goblin.lock"

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "i386": "386",
    "i686": "386",
    "x86": "386",
}


def detect_os() -> str:
    return platform.system().lower() or "unknown"


def detect_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine or "unknown")


@dataclass(frozen=True)
class Config:
    home_dir: str | None = None  # default: ~/.goblin
    manifest_url: str = DEFAULT_MANIFEST_URL
    manifest_path: str | None = None  # default: <home>/manifest/sources.yaml
    lock_path: str | None = None  # default: <home>/goblin.lock
    bin_dir: str | None = None  # default: <home>/bin
    timeout_s: float = DEFAULT_TIMEOUT_S
    platform_os: str | None = None  # default: detected, Go-style (linux, darwin, windows)
    platform_arch: str | None = None  # default: detected, Go-style (amd64, arm64)

    @property
    def home(self) -> Path:
        if self.home_dir:
            return Path(self.home_dir).expanduser()
        return Path.home() / HOME_DIRNAME

    @property
    def manifest_file(self) -> Path:
        if self.manifest_path:
            return Path(self.manifest_path).expanduser()
        return self.home / MANIFEST_DIRNAME / MANIFEST_FILENAME

    @property
    def lock_file(self) -> Path:
        if self.lock_path:
            return Path(self.lock_path).expanduser()
        return self.home / LOCK_FILENAME

    @property
    def bin_path(self) -> Path:
        if self.bin_dir:
            return Path(self.bin_dir).expanduser()
        return self.home / BIN_DIRNAME

    @property
    def os(self) -> str:
        return (self.platform_os or detect_os()).lower()

    @property
    def arch(self) -> str:
        return (self.platform_arch or detect_arch()).lower()


def config_path(path_override: str | Path | None = None) -> Path:
    if path_override is not None:
        return Path(path_override).expanduser()
    if env := os.getenv("GOBLIN_CONFIG_PATH"):
        return Path(env).expanduser()
    return user_config_path("goblin") / "config.json"


def load_config(path_override: str | Path | None = None) -> Config:
    path = config_path(path_override)
    if not path.exists():
        return Config()

    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        return Config()

    allowed = {f.name for f in Config.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    filtered: dict[str, Any] = {k: v for k, v in raw.items() if k in allowed}
    return Config(**filtered)  # type: ignore[arg-type]


def save_config(cfg: Config, path_override: str | Path | None = None) -> Path:
    path = config_path(path_override)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    tmp.replace(path)
    return path


def apply_env(cfg: Config) -> Config:
    # Env overrides the config file; CLI flags are applied on top by the caller.
    timeout_s = cfg.timeout_s
    if env_timeout := os.getenv("GOBLIN_TIMEOUT_S"):
        try:
            timeout_s = float(env_timeout)
        except ValueError:
            pass
    return replace(
        cfg,
        home_dir=os.getenv("GOBLIN_HOME") or cfg.home_dir,
        manifest_url=os.getenv("GOBLIN_MANIFEST_URL") or cfg.manifest_url,
        manifest_path=os.getenv("GOBLIN_MANIFEST_PATH") or cfg.manifest_path,
        timeout_s=timeout_s,
        platform_os=os.getenv("GOBLIN_OS") or cfg.platform_os,
        platform_arch=os.getenv("GOBLIN_ARCH") or cfg.platform_arch,
    )
