"""Resource resolution and known-vulnerability retrieval."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from ..core.errors import RemoteQueryError, ResourceResolutionError
from ..core.models import KnownVulnerabilities, KnownVulnerability
from .queries import RESOURCE_SEARCH, VULNERABILITY_FINDINGS
from .session import Session

logger = logging.getLogger(__name__)

PAGE_SIZE = 500


def resource_query_variables(cloud_platform: str, provider_id: str) -> dict[str, Any]:
    return {
        "quick": True,
        "first": 50,
        "query": {
            "type": ["VIRTUAL_MACHINE"],
            "select": True,
            "where": {
                "cloudPlatform": {"EQUALS": [cloud_platform]},
                "externalId": {"EQUALS": [provider_id]},
            },
        },
        "projectId": "*",
        "fetchTotalCount": True,
    }


def resolve_resource_id(session: Session, cloud_platform: str, provider_id: str) -> str:
    """Return the remote identifier of the virtual machine being scanned."""

    try:
        data = session.query(RESOURCE_SEARCH, resource_query_variables(cloud_platform, provider_id))
    except RemoteQueryError as exc:
        raise ResourceResolutionError(
            f"Resource search failed: {exc}", status_code=exc.status_code, messages=exc.messages
        ) from exc

    search = data.get("graphSearch") or {}
    total = search.get("totalCount")
    if total != 1:
        raise ResourceResolutionError(
            f"Found {total} resources matching {cloud_platform} external id {provider_id}"
        )
    try:
        resource_id = search["nodes"][0]["entities"][0]["id"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ResourceResolutionError("Resource search returned no entity id") from exc
    logger.debug("Matched resource id %s", resource_id)
    return str(resource_id)


def fetch_known_vulnerabilities(session: Session, resource_id: str) -> KnownVulnerabilities:
    """Page through every vulnerability finding on record for ``resource_id``."""

    findings: List[KnownVulnerability] = []
    after: Optional[str] = None
    while True:
        variables: dict[str, Any] = {
            "filterBy": {"assetId": [resource_id]},
            "first": PAGE_SIZE,
        }
        if after:
            variables["after"] = after
        data = session.query(VULNERABILITY_FINDINGS, variables)
        connection: Mapping[str, Any] = data.get("vulnerabilityFindings") or {}
        for node in connection.get("nodes") or []:
            if isinstance(node, Mapping):
                findings.append(KnownVulnerability.from_dict(node))
        page = connection.get("pageInfo") or {}
        after = page.get("endCursor")
        if not page.get("hasNextPage") or not after:
            break
    logger.info("Fetched %d known vulnerabilities for %s", len(findings), resource_id)
    return KnownVulnerabilities(resource_id=resource_id, findings=tuple(findings))


__all__ = ["resolve_resource_id", "fetch_known_vulnerabilities", "resource_query_variables"]
