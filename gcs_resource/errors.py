"""Exceptions raised by the resource commands.

Every error is fatal to the current invocation; the CLI reports it on stderr
and exits non-zero.
"""
from pathlib import Path
from typing import Optional


class ResourceError(RuntimeError):
    """Base class for resource failures."""


class RequestError(ResourceError):
    """Malformed request document or wrong command arguments."""


class ScanError(ResourceError):
    """Source directory could not be walked."""


class CredentialsError(ResourceError):
    """Storage credentials could not be resolved."""


class StorageClientError(ResourceError):
    """Storage client could not be constructed."""


class UploadError(ResourceError):
    """A single object transfer failed."""

    def __init__(self, path: Path, reason: str, key: Optional[str] = None):
        self.path = Path(path)
        self.reason = reason
        self.key = key
        target = f" to {key}" if key else ""
        super().__init__(f"failed to upload {self.path}{target}: {reason}")
