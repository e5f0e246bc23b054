"""
Protocols (Interfaces) for Dependency Inversion.

Small seams so the clock and the storage backend can be swapped in tests.
"""
from typing import Protocol, runtime_checkable

from .models import FileEntry, UploadResult


@runtime_checkable
class IClock(Protocol):
    """Wall-clock source returning seconds since the epoch."""

    def __call__(self) -> float:
        ...


@runtime_checkable
class IStorageClient(Protocol):
    """Interface for object uploads."""

    def upload_file(self, bucket: str, prefix: str, entry: FileEntry) -> UploadResult:
        """Upload one local file and return the committed object facts."""
        ...
