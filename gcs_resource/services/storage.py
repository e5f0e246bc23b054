"""
Storage Service - Single Responsibility: upload files to Google Cloud Storage.

Wraps the google-cloud-storage client with the fixed object metadata used by
the resource.
"""
import logging
import posixpath
from typing import Optional

from google.cloud import storage

from ..errors import StorageClientError, UploadError
from ..models import FileEntry, ResourceConfig, Source, UploadResult
from .credentials import CredentialProvider

logger = logging.getLogger(__name__)


def object_key(prefix: str, relative_path: str) -> str:
    """
    Build the object name for a file.

    Args:
        prefix: Key prefix from the request (slashes at either end are dropped)
        relative_path: POSIX path relative to the scan root

    Returns:
        ``prefix/relative_path``, or just ``relative_path`` for an empty prefix
    """
    prefix = (prefix or "").strip("/")
    relative_path = relative_path.lstrip("/")
    return posixpath.join(prefix, relative_path) if prefix else relative_path


class StorageService:
    """
    Service for uploading files to a bucket.

    Each call streams one local file to one object. The backend commits the
    object only once all bytes are received; failures are never retried.
    """

    def __init__(
        self,
        client: storage.Client,
        config: Optional[ResourceConfig] = None
    ):
        """
        Initialize storage service.

        Args:
            client: google-cloud-storage client
            config: Resource configuration
        """
        self._client = client
        self._config = config or ResourceConfig()

    @property
    def config(self) -> ResourceConfig:
        return self._config

    def upload_file(self, bucket: str, prefix: str, entry: FileEntry) -> UploadResult:
        """
        Upload a file to ``bucket`` under ``prefix``.

        Args:
            bucket: Bucket name
            prefix: Key prefix
            entry: File to upload

        Returns:
            Committed object facts (generation and checksums)

        Raises:
            UploadError: the file could not be read or the backend rejected it
        """
        key = object_key(prefix, entry.relative_path)
        logger.debug(f"Uploading {entry.path} to gs://{bucket}/{key}")

        blob = self._client.bucket(bucket).blob(key)
        blob.cache_control = self._config.cache_control

        try:
            with open(entry.path, "rb") as fh:
                blob.upload_from_file(
                    fh,
                    content_type=self._config.content_type,
                    checksum="crc32c",
                    timeout=self._config.upload_timeout,
                    retry=None,
                )
        except OSError as exc:
            raise UploadError(entry.path, str(exc), key=key) from exc
        except Exception as exc:
            # API errors, checksum mismatches and transport failures alike
            raise UploadError(entry.path, f"{type(exc).__name__}: {exc}", key=key) from exc

        generation = getattr(blob, "generation", None)
        return UploadResult(
            bucket=bucket,
            key=key,
            generation=str(generation) if generation is not None else None,
            crc32c=getattr(blob, "crc32c", None),
            md5_hash=getattr(blob, "md5_hash", None),
        )


def build_storage(
    source: Source,
    config: Optional[ResourceConfig] = None,
    provider: Optional[CredentialProvider] = None,
) -> StorageService:
    """
    Construct a StorageService for the request's source configuration.

    Raises:
        CredentialsError: credentials could not be resolved
        StorageClientError: the client could not be built
    """
    resolved = (provider or CredentialProvider()).resolve(source)

    client_options = None
    if source.api_endpoint:
        logger.info(f"Using storage endpoint {source.api_endpoint}")
        client_options = {"api_endpoint": source.api_endpoint}

    try:
        client = storage.Client(
            project=resolved.project,
            credentials=resolved.credentials,
            client_options=client_options,
        )
    except Exception as exc:
        raise StorageClientError(f"cannot create storage client: {exc}") from exc

    return StorageService(client, config)
