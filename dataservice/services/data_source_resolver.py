"""Locate the data source artifact that serves an endpoint.

Resolution order, per media type branch (ext is "xml" or "json"):

    1. {endpoint}.{ext}ds            templated query, only with a tenant
    2. {endpoint}.[{tenant}].{ext}   static file, with a tenant
       {endpoint}.{ext}              static file, without a tenant
    3. nothing

The XML branch is used only when the Accept header lists application/xml
and does not list application/json. Only file existence is checked here;
reading happens in the executor.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from dataservice.config import TenantContext
from dataservice.models import ArtifactKind, MediaType, ResolvedArtifact

logger = logging.getLogger(__name__)

TEMPLATED_SUFFIX = "ds"


def accepted_media_types(accept_header: str | None) -> set[str]:
    """Split an Accept header into its lower-cased media type tokens.

    Parameters after ';' (q-values etc.) are ignored.
    """
    if not accept_header:
        return set()
    tokens = set()
    for entry in accept_header.lower().split(","):
        token = entry.split(";", 1)[0].strip()
        if token:
            tokens.add(token)
    return tokens


def negotiate_media_type(accepted: str | Iterable[str] | None) -> MediaType:
    """Pick XML only when XML is accepted and JSON is not."""
    if accepted is None or isinstance(accepted, str):
        accepted = accepted_media_types(accepted)
    else:
        accepted = {token.lower() for token in accepted}
    if MediaType.XML.value in accepted and MediaType.JSON.value not in accepted:
        return MediaType.XML
    return MediaType.JSON


def is_safe_endpoint(endpoint: str | None) -> bool:
    """An endpoint must name a file directly under the artifact root."""
    if not endpoint or not endpoint.strip():
        return False
    if "/" in endpoint or "\\" in endpoint or ".." in endpoint:
        return False
    return "\x00" not in endpoint


class DataSourceResolver:
    """Finds artifacts under a fixed artifact root directory."""

    def __init__(self, artifact_root: str | Path) -> None:
        self.artifact_root = Path(artifact_root)

    def find(self, file_name: str) -> Path | None:
        """Return the path of file_name under the root if it is a file."""
        path = self.artifact_root / file_name
        return path if path.is_file() else None

    def resolve(
        self,
        tenant: TenantContext | None,
        endpoint: str,
        accepted: str | Iterable[str] | None = None,
    ) -> ResolvedArtifact:
        """Apply the fallback chain for endpoint.

        Args:
            tenant: Resolved tenant, or None when the request has none.
            endpoint: Logical endpoint name (path segment after /api).
            accepted: Accept header or its parsed media type tokens.

        Returns:
            The selected artifact, or an artifact of kind NONE.
        """
        media_type = negotiate_media_type(accepted)
        if not is_safe_endpoint(endpoint):
            logger.warning("Rejected endpoint name %r", endpoint)
            return ResolvedArtifact.none(media_type, endpoint)

        ext = media_type.extension
        if tenant is not None:
            path = self.find(f"{endpoint}.{ext}{TEMPLATED_SUFFIX}")
            if path is not None:
                logger.info("Endpoint %s -> templated query %s", endpoint, path.name)
                return ResolvedArtifact(
                    kind=ArtifactKind.TEMPLATED_QUERY,
                    media_type=media_type,
                    path=path,
                    tenant=tenant,
                    endpoint=endpoint,
                )
            static_name = f"{endpoint}.[{tenant.name}].{ext}"
        else:
            static_name = f"{endpoint}.{ext}"

        path = self.find(static_name)
        if path is not None:
            logger.info("Endpoint %s -> static file %s", endpoint, path.name)
            return ResolvedArtifact(
                kind=ArtifactKind.STATIC_FILE,
                media_type=media_type,
                path=path,
                tenant=tenant,
                endpoint=endpoint,
            )

        logger.info("Endpoint %s has no %s artifact", endpoint, ext)
        return ResolvedArtifact.none(media_type, endpoint)
