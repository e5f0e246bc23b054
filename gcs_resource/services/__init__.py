"""Services for the gcs resource."""
from .credentials import CredentialProvider, ResolvedCredentials, parse_service_account_key
from .storage import StorageService, build_storage, object_key

__all__ = [
    "CredentialProvider",
    "ResolvedCredentials",
    "parse_service_account_key",
    "StorageService",
    "build_storage",
    "object_key",
]
