"""Query-service index operations: build status and deferred builds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import quote

from capellaextras.client import CapellaError, Client

# Characters a path segment may carry unescaped besides the unreserved ones.
_SEGMENT_SAFE = "$&+,:;=@"


@dataclass(frozen=True)
class IndexBuildStatusRequest:
    organization_id: str
    project_id: str
    cluster_id: str
    bucket: str
    index_name: str
    scope: str
    collection: str


@dataclass(frozen=True)
class IndexBuildRequest:
    organization_id: str
    project_id: str
    cluster_id: str
    bucket: str
    index_names: tuple[str, ...] | list[str]
    scope: str
    collection: str


def _strict_fields(payload: Any, allowed: Iterable[str], kind: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise CapellaError(f"cannot decode {kind} from {type(payload).__name__}")
    allowed = set(allowed)
    fields: dict[str, Any] = {}
    for key, value in payload.items():
        name = str(key).lower()
        if name not in allowed:
            raise CapellaError(f'unknown field "{key}" in {kind}')
        fields[name] = value
    return fields


@dataclass(frozen=True)
class IndexBuildStatusResponse:
    status: str = ""

    @classmethod
    def from_json(cls, payload: Any) -> "IndexBuildStatusResponse":
        """Decode a response body, rejecting unknown fields."""
        fields = _strict_fields(payload, {"status"}, "index build status")
        status = fields.get("status")
        if status is None:
            status = ""
        if not isinstance(status, str):
            raise CapellaError("index build status must be a string")
        return cls(status=status)


@dataclass(frozen=True)
class IndexBuildResponse:
    error: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Any) -> "IndexBuildResponse":
        """Decode a response body, rejecting unknown fields."""
        fields = _strict_fields(payload, {"error"}, "index build response")
        error = fields.get("error")
        if error is not None and not isinstance(error, str):
            raise CapellaError("index build error must be a string")
        return cls(error=error)


def build_index_statement(request: IndexBuildRequest) -> str:
    """The BUILD INDEX statement for the request's indexes."""
    names = ", ".join(request.index_names)
    return f"BUILD INDEX ON `{request.bucket}`.`{request.scope}`.`{request.collection}`({names})"


def _cluster_path(organization_id: str, project_id: str, cluster_id: str) -> str:
    return f"v4/organizations/{organization_id}/projects/{project_id}/clusters/{cluster_id}"


def get_index_build_status(
    client: Client, request: IndexBuildStatusRequest
) -> Optional[IndexBuildStatusResponse]:
    """Fetch the build status of one index."""
    path = "{}/queryService/indexBuildStatus/{}".format(
        _cluster_path(request.organization_id, request.project_id, request.cluster_id),
        quote(request.index_name, safe=_SEGMENT_SAFE),
    )
    params = {
        "bucket": request.bucket,
        "scope": request.scope,
        "collection": request.collection,
    }
    return client.get(path, params, decode=IndexBuildStatusResponse.from_json)


def build_deferred_indexes(client: Client, request: IndexBuildRequest) -> Optional[IndexBuildResponse]:
    """Ask the query service to build the given deferred indexes."""
    path = _cluster_path(request.organization_id, request.project_id, request.cluster_id) + "/queryService/indexes"
    definition = {"Definition": build_index_statement(request)}
    return client.post(path, definition, decode=IndexBuildResponse.from_json)