"""
Credentials Service - Single Responsibility: resolve Google credentials.

Inline service-account keys are parsed in memory; nothing is written to disk,
so concurrent invocations on one host do not share credential files.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import google.auth
from google.auth.exceptions import DefaultCredentialsError
from google.oauth2 import service_account

from ..errors import CredentialsError
from ..models import Source

logger = logging.getLogger(__name__)

STORAGE_SCOPES = ("https://www.googleapis.com/auth/devstorage.read_write",)


@dataclass(frozen=True)
class ResolvedCredentials:
    """Credentials plus the project they belong to (may be unknown)."""
    credentials: Any
    project: Optional[str] = None
    ambient: bool = False


def parse_service_account_key(payload: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Parse an inline service-account key.

    Accepts a JSON object, a JSON string, or a JSON string that was
    encoded twice by the pipeline templating.
    """
    if isinstance(payload, dict):
        info = payload
    else:
        try:
            info = json.loads(payload.strip(), strict=False)
            if isinstance(info, str):
                info = json.loads(info, strict=False)
        except json.JSONDecodeError as exc:
            raise CredentialsError(f"invalid service account key JSON: {exc}") from exc

    if not isinstance(info, dict):
        raise CredentialsError("service account key must be a JSON object")

    missing = [k for k in ("client_email", "private_key") if not info.get(k)]
    if missing:
        raise CredentialsError(
            f"service account key is missing field(s): {', '.join(missing)}"
        )
    return info


class CredentialProvider:
    """Resolve credentials from the request, or from the host environment."""

    def __init__(self, scopes=STORAGE_SCOPES):
        self._scopes = list(scopes)

    def resolve(self, source: Source) -> ResolvedCredentials:
        if source.has_credentials:
            return self._from_inline(source.credentials)
        return self._from_ambient()

    def _from_inline(self, payload) -> ResolvedCredentials:
        info = parse_service_account_key(payload)
        try:
            credentials = service_account.Credentials.from_service_account_info(
                info, scopes=self._scopes
            )
        except (ValueError, KeyError) as exc:
            raise CredentialsError(f"error loading service account credentials: {exc}") from exc
        logger.debug(f"Using inline service account {info.get('client_email')}")
        return ResolvedCredentials(credentials=credentials, project=info.get("project_id"))

    def _from_ambient(self) -> ResolvedCredentials:
        try:
            credentials, project = google.auth.default(scopes=self._scopes)
        except DefaultCredentialsError as exc:
            raise CredentialsError(
                f"no credentials in request and no default credentials available: {exc}"
            ) from exc
        logger.debug("Using default application credentials")
        return ResolvedCredentials(credentials=credentials, project=project, ambient=True)
