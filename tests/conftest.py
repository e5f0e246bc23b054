"""Shared fixtures for gcs_resource tests."""
import errno
import logging
import os
import threading
from typing import List, Optional

import pytest

from gcs_resource.errors import UploadError
from gcs_resource.models import FileEntry, UploadResult
from gcs_resource.services.storage import object_key


class FakeStorage:
    """Records uploads; optionally fails on one relative path."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.calls: List[tuple] = []

    def upload_file(self, bucket: str, prefix: str, entry: FileEntry) -> UploadResult:
        key = object_key(prefix, entry.relative_path)
        self.calls.append((bucket, key, entry.relative_path))
        if entry.relative_path == self.fail_on:
            raise UploadError(entry.path, "503 Service Unavailable", key=key)
        return UploadResult(
            bucket=bucket,
            key=key,
            generation=str(1000 + len(self.calls)),
            crc32c="AAAAAA==",
            md5_hash="1B2M2Y8AsgTpgAmY7PhCfg==",
        )

    @property
    def keys(self) -> List[str]:
        return [key for _, key, _ in self.calls]


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def source_tree(tmp_path):
    """root/a.txt and root/sub/b.txt"""
    (tmp_path / "a.txt").write_text("alpha")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.txt").write_text("bravo")
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logging.disable(logging.NOTSET)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


class BlockingStorage(FakeStorage):
    """Upload that hangs until released, recording when it finishes."""

    def __init__(self, hold: float = 3.0):
        super().__init__()
        self.hold = hold
        self.release = threading.Event()
        self.started: List[str] = []
        self.finished: List[str] = []

    def upload_file(self, bucket, prefix, entry):
        self.started.append(entry.relative_path)
        self.release.wait(self.hold)
        result = super().upload_file(bucket, prefix, entry)
        self.finished.append(entry.relative_path)
        return result


@pytest.fixture
def blocking_storage():
    storage = BlockingStorage()
    yield storage
    storage.release.set()


@pytest.fixture
def deny_listing(monkeypatch):
    """Make listing directories with a given name fail with EACCES."""
    real_scandir = os.scandir
    blocked = set()

    def scandir(path="."):
        if os.path.basename(os.fspath(path)) in blocked:
            raise PermissionError(errno.EACCES, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir)
    return blocked.add
