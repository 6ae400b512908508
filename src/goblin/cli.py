from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from dataclasses import asdict, replace
from typing import Any

from ._version import __version__
from .client import GoblinClient
from .config import Config, apply_env, config_path, load_config
from .errors import CorruptLockFileError, GoblinError, ManifestError
from .lockfile import LockStore
from .logging_utils import configure_logging
from .manifest import Manifest, ensure_manifest, load_manifest, refresh_manifest
from .operations import REMOVE, Outcome, PackageManager
from .reconcile import ERROR, INSTALL, REPAIR, SKIP, UPDATE
from .transfer import HttpTransfer

logger = logging.getLogger(__name__)

_PAST_TENSE = {
    INSTALL: "installed",
    UPDATE: "updated",
    REPAIR: "repaired",
    SKIP: "skipped",
    REMOVE: "removed",
    ERROR: "error",
}


def _merge_cfg(base: Config, args: argparse.Namespace) -> Config:
    # Env overrides config; CLI overrides both.
    cfg = apply_env(base)
    overrides: dict[str, Any] = {}
    if getattr(args, "home", None):
        overrides["home_dir"] = args.home
    if getattr(args, "manifest", None):
        overrides["manifest_path"] = args.manifest
    if getattr(args, "manifest_url", None):
        overrides["manifest_url"] = args.manifest_url
    if getattr(args, "timeout_s", None) is not None:
        overrides["timeout_s"] = float(args.timeout_s)
    if getattr(args, "os", None):
        overrides["platform_os"] = args.os
    if getattr(args, "arch", None):
        overrides["platform_arch"] = args.arch
    return replace(cfg, **overrides) if overrides else cfg


def _print_table(rows: list[list[str]]) -> None:
    if not rows:
        return
    widths = [0] * len(rows[0])
    for r in rows:
        for i, c in enumerate(r):
            widths[i] = max(widths[i], len(c))
    for r in rows:
        line = "  ".join(c.ljust(widths[i]) for i, c in enumerate(r))
        print(line.rstrip())


def _format_outcome(outcome: Outcome) -> str:
    label = _PAST_TENSE.get(outcome.action, outcome.action)
    if outcome.action == ERROR:
        return f"{label}: {outcome.name}: {outcome.message}"
    if outcome.action == SKIP:
        return f"{label}: {outcome.name} (already up to date, {outcome.new_version})"
    if outcome.action == REMOVE:
        return f"{label}: {outcome.name} {outcome.previous_version}"
    if outcome.previous_version and outcome.previous_version != outcome.new_version:
        return f"{label}: {outcome.name} {outcome.previous_version} -> {outcome.new_version}"
    return f"{label}: {outcome.name} {outcome.new_version}"


def _print_outcomes(outcomes: list[Outcome], *, as_json: bool, summary: bool) -> int:
    failed = sum(1 for o in outcomes if not o.ok)
    if as_json:
        print(json.dumps({"outcomes": [asdict(o) for o in outcomes]}, indent=2, sort_keys=True))
        return 1 if failed else 0

    for outcome in outcomes:
        print(_format_outcome(outcome))
    if summary:
        counts: dict[str, int] = {}
        for o in outcomes:
            counts[o.action] = counts.get(o.action, 0) + 1
        rows = [["ACTION", "COUNT"]]
        for action in (INSTALL, UPDATE, REPAIR, SKIP, ERROR):
            rows.append([_PAST_TENSE[action], str(counts.get(action, 0))])
        _print_table(rows)
    return 1 if failed else 0


def _load_manifest(cfg: Config, client: GoblinClient, *, refresh: bool) -> Manifest:
    if refresh:
        try:
            refresh_manifest(cfg, client)
        except ManifestError as e:
            logger.warning("Manifest refresh failed: %s", e)
            print(f"warning: could not refresh manifest ({e}); using local copy", file=sys.stderr)
    path = ensure_manifest(cfg, client)
    return load_manifest(path)


def _make_manager(cfg: Config, client: GoblinClient, manifest: Manifest | None = None) -> PackageManager:
    return PackageManager(
        config=cfg,
        store=LockStore(cfg.lock_file),
        transfer=HttpTransfer(client),
        manifest=manifest,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="goblin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Install prebuilt binaries declared in a package manifest.",
        epilog=textwrap.dedent(
            """\
            Environment variables:
              GOBLIN_HOME, GOBLIN_MANIFEST_URL, GOBLIN_MANIFEST_PATH, GOBLIN_TIMEOUT_S,
              GOBLIN_OS, GOBLIN_ARCH, GOBLIN_CONFIG_PATH, GOBLIN_LOG_LEVEL
            """
        ),
    )

    def _add_runtime_overrides(parser: argparse.ArgumentParser) -> None:
        # Accepted before and after the subcommand, e.g.:
        #   goblin --home /tmp/g install rg
        #   goblin install rg --home /tmp/g
        parser.add_argument("--home", default=argparse.SUPPRESS, help="Goblin home directory (default: ~/.goblin)")
        parser.add_argument("--manifest", default=argparse.SUPPRESS, help="Local manifest path (skips refresh)")
        parser.add_argument("--manifest-url", default=argparse.SUPPRESS, help="Remote manifest URL")
        parser.add_argument("--timeout-s", type=float, default=argparse.SUPPRESS, help="HTTP timeout in seconds")
        parser.add_argument("--os", default=argparse.SUPPRESS, help="Target OS (default: detected)")
        parser.add_argument("--arch", default=argparse.SUPPRESS, help="Target architecture (default: detected)")
        parser.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Debug logging")

    _add_runtime_overrides(p)
    p.add_argument("--version", action="version", version=f"goblin {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    install = sub.add_parser("install", aliases=["i"], help="Install (or reinstall) a package")
    _add_runtime_overrides(install)
    install.add_argument("package", help="Package name from the manifest")
    install.add_argument("--json", action="store_true", help="Output JSON")

    update = sub.add_parser("update", aliases=["up"], help="Update one package, or every installed package")
    _add_runtime_overrides(update)
    update.add_argument("package", nargs="?", help="Package name (default: all installed packages)")
    update.add_argument("--force", action="store_true", help="Reinstall even when already up to date")
    update.add_argument("--no-refresh", action="store_true", help="Do not refresh the manifest first")
    update.add_argument("--json", action="store_true", help="Output JSON")

    remove = sub.add_parser("remove", aliases=["rm", "uninstall"], help="Remove an installed package")
    _add_runtime_overrides(remove)
    remove.add_argument("package", help="Installed package name")
    remove.add_argument("--json", action="store_true", help="Output JSON")

    sync = sub.add_parser("sync", help="Reinstall packages whose binary is missing")
    _add_runtime_overrides(sync)
    sync.add_argument("--json", action="store_true", help="Output JSON")

    lst = sub.add_parser("list", aliases=["ls"], help="List installed packages")
    _add_runtime_overrides(lst)
    lst.add_argument("--json", action="store_true", help="Output JSON")

    manifest = sub.add_parser("manifest", help="Manage the cached manifest")
    manifest_sub = manifest.add_subparsers(dest="subcmd", required=True)
    manifest_path = manifest_sub.add_parser("path", help="Print manifest path")
    _add_runtime_overrides(manifest_path)
    manifest_refresh = manifest_sub.add_parser("refresh", help="Download the manifest again")
    _add_runtime_overrides(manifest_refresh)

    cfg = sub.add_parser("config", help="Show local config")
    cfg_sub = cfg.add_subparsers(dest="subcmd", required=True)
    cfg_sub.add_parser("path", help="Print config path")
    cfg_show = cfg_sub.add_parser("show", help="Show effective config")
    _add_runtime_overrides(cfg_show)

    return p


def cmd_install(args: argparse.Namespace, cfg: Config) -> int:
    with GoblinClient(timeout_s=cfg.timeout_s) as client:
        manifest = _load_manifest(cfg, client, refresh=False)
        outcome = _make_manager(cfg, client, manifest).install(args.package)
    return _print_outcomes([outcome], as_json=args.json, summary=False)


def cmd_update(args: argparse.Namespace, cfg: Config) -> int:
    refresh = not args.no_refresh and not getattr(args, "manifest", None)
    with GoblinClient(timeout_s=cfg.timeout_s) as client:
        manifest = _load_manifest(cfg, client, refresh=refresh)
        manager = _make_manager(cfg, client, manifest)
        if args.package:
            outcomes = [manager.update(args.package, force=args.force)]
        else:
            outcomes = manager.update_all(force=args.force)
            if not outcomes and not args.json:
                print("No packages installed.")
                return 0
    return _print_outcomes(outcomes, as_json=args.json, summary=not args.package)


def cmd_remove(args: argparse.Namespace, cfg: Config) -> int:
    with GoblinClient(timeout_s=cfg.timeout_s) as client:
        outcome = _make_manager(cfg, client).remove(args.package)
    return _print_outcomes([outcome], as_json=args.json, summary=False)


def cmd_sync(args: argparse.Namespace, cfg: Config) -> int:
    with GoblinClient(timeout_s=cfg.timeout_s) as client:
        manager = _make_manager(cfg, client)
        # Nothing to repair means no reason to touch the manifest or the network.
        if manager.missing():
            manager.manifest = _load_manifest(cfg, client, refresh=False)
        outcomes = manager.sync()
    if not outcomes and not args.json:
        print("All installed binaries are present.")
        return 0
    return _print_outcomes(outcomes, as_json=args.json, summary=False)


def cmd_list(args: argparse.Namespace, cfg: Config) -> int:
    entries = LockStore(cfg.lock_file).load().packages
    if args.json:
        print(json.dumps({"packages": [asdict(e) for e in entries]}, indent=2, sort_keys=True))
        return 0
    if not entries:
        print("No packages installed.")
        return 0
    rows = [["NAME", "VERSION", "RESOLVED_FROM", "PLATFORM", "INSTALLED", "PATH"]]
    for e in entries:
        rows.append([e.name, e.version, e.resolved_from, f"{e.os}/{e.arch}", e.install_date, e.path])
    _print_table(rows)
    return 0


def cmd_manifest(args: argparse.Namespace, cfg: Config) -> int:
    if args.subcmd == "path":
        print(str(cfg.manifest_file))
        return 0
    if args.subcmd == "refresh":
        with GoblinClient(timeout_s=cfg.timeout_s) as client:
            path = refresh_manifest(cfg, client)
        manifest = load_manifest(path)
        print(f"manifest: {path}")
        print(f"packages: {len(manifest.packages)}")
        return 0
    raise AssertionError("unreachable")


def cmd_config(args: argparse.Namespace, cfg: Config) -> int:
    if args.subcmd == "path":
        print(str(config_path()))
        return 0
    if args.subcmd == "show":
        shown = asdict(cfg)
        shown.update(
            {
                "home_dir": str(cfg.home),
                "manifest_path": str(cfg.manifest_file),
                "lock_path": str(cfg.lock_file),
                "bin_dir": str(cfg.bin_path),
                "platform_os": cfg.os,
                "platform_arch": cfg.arch,
            }
        )
        print(json.dumps(shown, indent=2, sort_keys=True))
        return 0
    raise AssertionError("unreachable")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=getattr(args, "verbose", False))
    try:
        cfg = _merge_cfg(load_config(), args)
        if args.cmd in ("install", "i"):
            return cmd_install(args, cfg)
        if args.cmd in ("update", "up"):
            return cmd_update(args, cfg)
        if args.cmd in ("remove", "rm", "uninstall"):
            return cmd_remove(args, cfg)
        if args.cmd == "sync":
            return cmd_sync(args, cfg)
        if args.cmd in ("list", "ls"):
            return cmd_list(args, cfg)
        if args.cmd == "manifest":
            return cmd_manifest(args, cfg)
        if args.cmd == "config":
            return cmd_config(args, cfg)
        raise AssertionError("unreachable")
    except CorruptLockFileError as e:
        print(f"fatal: lock file is corrupt, refusing to continue: {e}", file=sys.stderr)
        return 2
    except GoblinError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
