from ._version import __version__
from .config import Config, load_config
from .errors import GoblinError
from .lockfile import InstalledPackage, LockFile, LockStore
from .manifest import Artifact, Manifest, Package, load_manifest, select_artifact
from .operations import Outcome, PackageManager
from .reconcile import Decision, Reconciler
from .versions import compare_versions

__all__ = [
    "__version__",
    "Artifact",
    "Config",
    "Decision",
    "GoblinError",
    "InstalledPackage",
    "LockFile",
    "LockStore",
    "Manifest",
    "Outcome",
    "Package",
    "PackageManager",
    "Reconciler",
    "compare_versions",
    "load_config",
    "load_manifest",
    "select_artifact",
]
