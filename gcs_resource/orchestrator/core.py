"""Core orchestrator - runs the out command."""
from pathlib import Path
from typing import Callable, List, Optional
import asyncio
import threading
import logging

from ..errors import UploadError
from ..models import (
    FileEntry,
    MetadataField,
    OutRequest,
    OutResponse,
    ResourceConfig,
    Source,
)
from ..protocols import IClock, IStorageClient
from ..utils.events import (
    FILE_COMPLETE,
    FILE_FAIL,
    FILE_START,
    SCAN_COMPLETE,
    EventEmitter,
)
from ..version import synthesize_version
from .file_collector import FileCollector

logger = logging.getLogger(__name__)

StorageFactory = Callable[[Source, ResourceConfig], IStorageClient]


def _default_storage_factory(source: Source, config: ResourceConfig) -> IStorageClient:
    from ..services.storage import build_storage
    return build_storage(source, config)


class PublishOrchestrator:
    """
    Publishes a directory tree to a bucket, one file at a time.

    Flow: stamp version -> scan -> (no files: done) -> build storage ->
    upload each file in scan order -> aggregate metadata.
    The first failed upload aborts the run; objects already written stay.

    Usage:
        orchestrator = PublishOrchestrator()
        orchestrator.on_file_complete(lambda entry, result: print(result.key))
        response = await orchestrator.publish(request, Path(sys.argv[1]))
    """

    def __init__(
        self,
        config: Optional[ResourceConfig] = None,
        storage_factory: Optional[StorageFactory] = None,
        clock: Optional[IClock] = None,
        collector: Optional[FileCollector] = None,
    ):
        self._config = config or ResourceConfig()
        self._storage_factory = storage_factory or _default_storage_factory
        self._clock = clock
        self._collector = collector or FileCollector()
        self._events = EventEmitter()

    # Event subscription methods
    def on_scan_complete(self, callback: Callable[[Path, List[FileEntry]], None]):
        """Called once the scan root has been walked."""
        self._events.on(SCAN_COMPLETE, callback)

    def on_file_start(self, callback: Callable[[FileEntry], None]):
        self._events.on(FILE_START, callback)

    def on_file_complete(self, callback):
        """Receives the FileEntry and its UploadResult."""
        self._events.on(FILE_COMPLETE, callback)

    def on_file_fail(self, callback):
        """Receives the FileEntry and the UploadError."""
        self._events.on(FILE_FAIL, callback)

    async def publish(self, request: OutRequest, source_root: Path) -> OutResponse:
        """
        Upload every file under ``source_root / params.source``.

        Args:
            request: Parsed out request
            source_root: Directory given to the out command

        Returns:
            Response with the stamped version and one metadata field per object

        Raises:
            ScanError: the scan root could not be walked
            CredentialsError, StorageClientError: storage setup failed
            UploadError: a transfer failed; later files were not attempted
        """
        version = synthesize_version(self._clock)
        params = request.params

        scan_root = Path(source_root) / params.source
        files = self._collector.collect_files(scan_root)
        logger.info(f"Found {len(files)} file(s) under {scan_root}")
        await self._events.emit(SCAN_COMPLETE, scan_root, files)

        if not files:
            logger.info("Nothing to upload")
            return OutResponse(version=version, metadata=[])

        storage = self._storage_factory(request.source, self._config)

        metadata: List[MetadataField] = []
        for entry in files:
            await self._events.emit(FILE_START, entry)
            try:
                result = await self._upload_one(storage, params.bucket, params.prefix, entry)
            except UploadError as exc:
                await self._events.emit(FILE_FAIL, entry, exc)
                raise
            metadata.append(result.to_metadata())
            await self._events.emit(FILE_COMPLETE, entry, result)

        logger.info(f"Uploaded {len(metadata)} file(s) to gs://{params.bucket}")
        return OutResponse(version=version, metadata=metadata)

    async def _upload_one(self, storage: IStorageClient, bucket: str, prefix: str, entry: FileEntry):
        """
        Run one blocking upload against the per-file deadline.

        The transfer runs on a daemon thread that nothing joins, so a
        timed-out upload neither delays the failure nor keeps the process
        alive; it dies with the interpreter.
        """
        timeout = self._config.upload_timeout
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(outcome, error) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(outcome)

        def transfer() -> None:
            outcome, error = None, None
            try:
                outcome = storage.upload_file(bucket, prefix, entry)
            except Exception as exc:
                error = exc
            try:
                loop.call_soon_threadsafe(settle, outcome, error)
            except RuntimeError:
                # loop closed after the deadline already failed the run
                logger.debug(f"Late upload outcome for {entry.relative_path} dropped")

        worker = threading.Thread(
            target=transfer,
            name=f"upload:{entry.relative_path}",
            daemon=True,
        )
        worker.start()

        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise UploadError(entry.path, f"timed out after {timeout:g}s") from exc
