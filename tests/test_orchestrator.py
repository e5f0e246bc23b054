"""Tests for the out command orchestration."""
import time
from unittest.mock import Mock

import pytest

from gcs_resource.errors import ScanError, UploadError
from gcs_resource.models import OutRequest, ResourceConfig
from gcs_resource.orchestrator import FileCollector, PublishOrchestrator

from conftest import FakeStorage


def make_request(source=".", bucket="my-bucket", prefix="runs/42"):
    return OutRequest.from_dict({
        "source": {},
        "version": {},
        "params": {"source": source, "bucket": bucket, "prefix": prefix},
    })


def make_orchestrator(storage, clock=lambda: 1700000000, **kwargs):
    factory = Mock(return_value=storage)
    orchestrator = PublishOrchestrator(storage_factory=factory, clock=clock, **kwargs)
    return orchestrator, factory


class TestPublishOrchestrator:
    @pytest.mark.asyncio
    async def test_uploads_every_file(self, source_tree, fake_storage):
        orchestrator, factory = make_orchestrator(fake_storage)

        response = await orchestrator.publish(make_request(), source_tree)

        factory.assert_called_once()
        assert sorted(fake_storage.keys) == ["runs/42/a.txt", "runs/42/sub/b.txt"]
        assert response.version.timestamp == "1700000000"
        assert [m.name for m in response.metadata] == [
            f"gs://my-bucket/{key}" for key in fake_storage.keys
        ]

    @pytest.mark.asyncio
    async def test_keys_relative_to_scan_root(self, source_tree, fake_storage):
        orchestrator, _ = make_orchestrator(fake_storage)

        await orchestrator.publish(make_request(source="sub", prefix="p"), source_tree)

        assert fake_storage.keys == ["p/b.txt"]

    @pytest.mark.asyncio
    async def test_empty_directory_skips_backend(self, tmp_path, fake_storage):
        (tmp_path / "nested").mkdir()
        orchestrator, factory = make_orchestrator(fake_storage)

        response = await orchestrator.publish(make_request(), tmp_path)

        factory.assert_not_called()
        assert response.metadata == []
        assert response.version.timestamp == "1700000000"

    @pytest.mark.asyncio
    async def test_version_captured_once(self, source_tree, fake_storage):
        ticks = iter([1700000000, 1700009999, 1700099999])
        clock = Mock(side_effect=lambda: next(ticks))
        orchestrator, _ = make_orchestrator(fake_storage, clock=clock)

        response = await orchestrator.publish(make_request(), source_tree)

        assert clock.call_count == 1
        assert response.version.timestamp == "1700000000"

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, tmp_path):
        for name in ("one.txt", "two.txt", "three.txt", "four.txt"):
            (tmp_path / name).write_text(name)
        order = [f.relative_path for f in FileCollector.collect_files(tmp_path)]
        failing = order[1]
        storage = FakeStorage(fail_on=failing)
        orchestrator, _ = make_orchestrator(storage)

        with pytest.raises(UploadError, match="503"):
            await orchestrator.publish(make_request(prefix=""), tmp_path)

        assert [rel for _, _, rel in storage.calls] == order[:2]

    @pytest.mark.asyncio
    async def test_missing_scan_root(self, tmp_path, fake_storage):
        orchestrator, factory = make_orchestrator(fake_storage)

        with pytest.raises(ScanError):
            await orchestrator.publish(make_request(source="missing"), tmp_path)

        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_per_file_timeout(self, source_tree, blocking_storage):
        orchestrator, _ = make_orchestrator(
            blocking_storage, config=ResourceConfig(upload_timeout=0.1)
        )

        started = time.monotonic()
        with pytest.raises(UploadError, match="timed out"):
            await orchestrator.publish(make_request(), source_tree)

        assert time.monotonic() - started < 1.0
        assert len(blocking_storage.started) == 1
        assert blocking_storage.finished == []

    @pytest.mark.asyncio
    async def test_events(self, source_tree):
        storage = FakeStorage(fail_on="sub/b.txt")
        orchestrator, _ = make_orchestrator(storage)
        started, completed, failed, scanned = [], [], [], []
        orchestrator.on_scan_complete(lambda root, files: scanned.append(len(files)))
        orchestrator.on_file_start(lambda entry: started.append(entry.relative_path))
        orchestrator.on_file_complete(lambda entry, result: completed.append(result.key))
        orchestrator.on_file_fail(lambda entry, error: failed.append(entry.relative_path))

        with pytest.raises(UploadError):
            await orchestrator.publish(make_request(prefix=""), source_tree)

        assert scanned == [2]
        assert failed == ["sub/b.txt"]
        assert "sub/b.txt" in started
        assert "sub/b.txt" not in completed

    @pytest.mark.asyncio
    async def test_unreadable_subdirectory_aborts_before_upload(
        self, source_tree, fake_storage, deny_listing
    ):
        (source_tree / "locked").mkdir()
        deny_listing("locked")
        orchestrator, factory = make_orchestrator(fake_storage)

        with pytest.raises(ScanError, match="locked"):
            await orchestrator.publish(make_request(), source_tree)

        factory.assert_not_called()
        assert fake_storage.calls == []
