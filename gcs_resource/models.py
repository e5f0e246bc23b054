"""
Models for the gcs resource.

Immutable dataclasses for requests, responses and per-file results.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Union
from pathlib import Path
import os

from .errors import RequestError, ResourceError


DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_CACHE_CONTROL = "private, max-age=0, no-cache"
DEFAULT_UPLOAD_TIMEOUT = 300.0
NONE_VERSION = "none"


def _require_mapping(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RequestError(f"invalid JSON request: '{name}' must be an object")
    return value


def _optional_str(data: Dict[str, Any], key: str, section: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise RequestError(f"invalid JSON request: '{section}.{key}' must be a string")
    return value


@dataclass(frozen=True)
class Source:
    """Resource-level configuration from the pipeline definition."""
    url: Optional[str] = None
    # Service-account key: parsed JSON object or the raw JSON string
    credentials: Optional[Union[str, Dict[str, Any]]] = None

    @property
    def has_credentials(self) -> bool:
        if isinstance(self.credentials, str):
            return bool(self.credentials.strip())
        return bool(self.credentials)

    @property
    def api_endpoint(self) -> Optional[str]:
        """Storage API endpoint override, only for http(s) URLs."""
        if self.url and self.url.startswith(("http://", "https://")):
            return self.url.rstrip("/")
        return None

    @classmethod
    def from_dict(cls, data: Any) -> "Source":
        data = _require_mapping(data, "source")
        credentials = data.get("credentials")
        if credentials is not None and not isinstance(credentials, (str, dict)):
            raise RequestError(
                "invalid JSON request: 'source.credentials' must be an object or a string"
            )
        return cls(url=_optional_str(data, "url", "source"), credentials=credentials)

    def redacted(self) -> Dict[str, Any]:
        """Loggable view with credentials masked."""
        return {
            "url": self.url,
            "credentials": "***" if self.has_credentials else None,
        }


@dataclass(frozen=True)
class Version:
    """Version token exchanged with the orchestrator."""
    timestamp: Optional[str] = None
    ref: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.timestamp or self.ref)

    @classmethod
    def from_dict(cls, data: Any) -> "Version":
        data = _require_mapping(data, "version")
        return cls(
            timestamp=_optional_str(data, "timestamp", "version"),
            ref=_optional_str(data, "ref", "version"),
        )

    def to_dict(self) -> Dict[str, str]:
        result = {}
        if self.timestamp is not None:
            result["timestamp"] = self.timestamp
        if self.ref is not None:
            result["ref"] = self.ref
        return result


@dataclass(frozen=True)
class OutParams:
    """Step-level parameters of the out command."""
    bucket: str
    source: str = "."
    prefix: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "OutParams":
        data = _require_mapping(data, "params")
        bucket = _optional_str(data, "bucket", "params")
        if not bucket or not bucket.strip():
            raise RequestError("invalid JSON request: 'params.bucket' is required")
        return cls(
            bucket=bucket.strip(),
            source=_optional_str(data, "source", "params") or ".",
            prefix=_optional_str(data, "prefix", "params") or "",
        )


@dataclass(frozen=True)
class OutRequest:
    """Request document of the out command."""
    source: Source
    params: OutParams
    version: Version = field(default_factory=Version)

    @classmethod
    def from_dict(cls, data: Any) -> "OutRequest":
        if not isinstance(data, dict):
            raise RequestError("invalid JSON request: expected an object")
        return cls(
            source=Source.from_dict(data.get("source")),
            version=Version.from_dict(data.get("version")),
            params=OutParams.from_dict(data.get("params")),
        )

    def redacted(self) -> Dict[str, Any]:
        return {
            "source": self.source.redacted(),
            "version": self.version.to_dict(),
            "params": {
                "source": self.params.source,
                "bucket": self.params.bucket,
                "prefix": self.params.prefix,
            },
        }


@dataclass(frozen=True)
class InRequest:
    """Request document of the in command. Only the version is used."""
    source: Source = field(default_factory=Source)
    version: Version = field(default_factory=Version)
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "InRequest":
        if not isinstance(data, dict):
            raise RequestError("invalid JSON request: expected an object")
        return cls(
            source=Source.from_dict(data.get("source")),
            version=Version.from_dict(data.get("version")),
            params=_require_mapping(data.get("params"), "params"),
        )


@dataclass(frozen=True)
class FileEntry:
    """A local file found under the scan root."""
    path: Path
    relative_path: str

    @property
    def size(self) -> int:
        return self.path.stat().st_size


@dataclass(frozen=True)
class UploadResult:
    """Immutable facts about a committed object."""
    bucket: str
    key: str
    generation: Optional[str] = None
    crc32c: Optional[str] = None
    md5_hash: Optional[str] = None

    @property
    def uri(self) -> str:
        return f"gs://{self.bucket}/{self.key}"

    def to_metadata(self) -> "MetadataField":
        return MetadataField(
            name=self.uri,
            value=f"generation={self.generation or '-'} "
                  f"crc32c={self.crc32c or '-'} md5={self.md5_hash or '-'}",
        )


@dataclass(frozen=True)
class MetadataField:
    name: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class OutResponse:
    """Response document of the out command."""
    version: Version
    metadata: List[MetadataField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version.to_dict(),
            "metadata": [item.to_dict() for item in self.metadata],
        }


@dataclass(frozen=True)
class ResourceConfig:
    """Operator-level configuration, read from the environment."""
    content_type: str = DEFAULT_CONTENT_TYPE
    cache_control: str = DEFAULT_CACHE_CONTROL
    upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT  # seconds per file

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ResourceConfig":
        env = os.environ if environ is None else environ
        raw_timeout = env.get("GCS_RESOURCE_UPLOAD_TIMEOUT")
        timeout = DEFAULT_UPLOAD_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as exc:
                raise ResourceError(
                    f"GCS_RESOURCE_UPLOAD_TIMEOUT must be a number, got {raw_timeout!r}"
                ) from exc
            if timeout <= 0:
                raise ResourceError("GCS_RESOURCE_UPLOAD_TIMEOUT must be positive")
        return cls(
            content_type=env.get("GCS_RESOURCE_CONTENT_TYPE") or DEFAULT_CONTENT_TYPE,
            cache_control=env.get("GCS_RESOURCE_CACHE_CONTROL") or DEFAULT_CACHE_CONTROL,
            upload_timeout=timeout,
        )
