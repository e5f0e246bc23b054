"""
gcs-resource - pipeline resource that publishes build output to Google Cloud Storage.

Commands (selected by --cmd or by the invoked program name):
    check              -> []
    in <destination>   -> {"version": {...}}   (echoes the requested version)
    out <source>       -> {"version": {"timestamp": ...}, "metadata": [...]}

Usage from Python:
    from gcs_resource import PublishOrchestrator, OutRequest

    request = OutRequest.from_dict(json.load(sys.stdin))
    response = await PublishOrchestrator().publish(request, Path(source_dir))
"""
__version__ = "0.1.0"

from .errors import (
    ResourceError,
    RequestError,
    ScanError,
    CredentialsError,
    StorageClientError,
    UploadError,
)
from .models import (
    FileEntry,
    InRequest,
    MetadataField,
    OutParams,
    OutRequest,
    OutResponse,
    ResourceConfig,
    Source,
    UploadResult,
    Version,
)
from .orchestrator import PublishOrchestrator, FileCollector

__all__ = [
    # Main
    "PublishOrchestrator",
    "FileCollector",
    # Models
    "FileEntry",
    "InRequest",
    "MetadataField",
    "OutParams",
    "OutRequest",
    "OutResponse",
    "ResourceConfig",
    "Source",
    "UploadResult",
    "Version",
    # Errors
    "ResourceError",
    "RequestError",
    "ScanError",
    "CredentialsError",
    "StorageClientError",
    "UploadError",
]
