from __future__ import annotations

from dataclasses import dataclass


class GoblinError(RuntimeError):
    pass


class ManifestError(GoblinError):
    pass


class NotDeclaredError(GoblinError):
    pass


class NoMatchingArtifactError(GoblinError):
    pass


class TransferError(GoblinError):
    pass


@dataclass(frozen=True)
class TransferHTTPError(TransferError):
    status_code: int
    url: str

    def __str__(self) -> str:
        return f"Download failed with HTTP {self.status_code}: {self.url}"


class FilesystemError(GoblinError):
    pass


class CorruptLockFileError(GoblinError):
    pass


class UnknownPackageError(GoblinError):
    pass


# Failures that only sink the package being processed, never the whole run.
RECOVERABLE_ERRORS: tuple[type[GoblinError], ...] = (
    NotDeclaredError,
    NoMatchingArtifactError,
    TransferError,
    FilesystemError,
)
