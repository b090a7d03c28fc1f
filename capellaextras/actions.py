"""The build-index action: build deferred indexes that are still in the Created state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from capellaextras.client import CapellaError, Client
from capellaextras.indexes import (
    IndexBuildRequest,
    IndexBuildStatusRequest,
    build_deferred_indexes,
    get_index_build_status,
)

DEFAULT_SCOPE = "_default"
DEFAULT_COLLECTION = "_default"
CREATED_STATUS = "Created"

NOTHING_TO_BUILD = "No indexes need built"
FINISHED = "finished action invocation, Indexes will be built in the background."

Progress = Callable[[str], None]


class ActionError(Exception):
    """Raised when the action cannot be configured or its invocation fails."""

    def __init__(self, summary: str, detail: str = "") -> None:
        super().__init__(f"{summary}: {detail}" if detail else summary)
        self.summary = summary
        self.detail = detail


@dataclass(frozen=True)
class BuildIndexConfig:
    """Configuration of one build-index invocation."""

    organization_id: str
    project_id: str
    cluster_id: str
    bucket_name: str
    index_names: Sequence[str] = field(default_factory=tuple)
    scope_name: Optional[str] = None
    collection_name: Optional[str] = None

    @property
    def scope(self) -> str:
        return DEFAULT_SCOPE if self.scope_name is None else self.scope_name

    @property
    def collection(self) -> str:
        return DEFAULT_COLLECTION if self.collection_name is None else self.collection_name


def _format_names(names: Sequence[str]) -> str:
    return "[" + " ".join(names) + "]"


class BuildIndexAction:
    """Triggers the building of indexes that are in the Created state."""

    def __init__(self, client: Optional[Client] = None) -> None:
        self.client = client

    def configure(self, provider_data: Any) -> None:
        """Take the provider's API client; ``None`` leaves the action unconfigured."""
        if provider_data is None:
            return
        if not isinstance(provider_data, Client):
            raise ActionError(
                "Unexpected Data Source Configure Type",
                f"Expected Client, got: {type(provider_data).__name__}. "
                "Please report this issue to the provider developers.",
            )
        self.client = provider_data

    def invoke(self, config: BuildIndexConfig, progress: Optional[Progress] = None) -> list[str]:
        """Build every listed index whose status is Created.

        Progress messages go to ``progress``. Returns the names of the indexes
        that were submitted for building.
        """
        if self.client is None:
            raise ActionError("Action Not Configured", "The action has no API client configured.")
        report: Progress = progress if progress is not None else (lambda message: None)
        scope = config.scope
        collection = config.collection

        to_build: list[str] = []
        for index_name in config.index_names:
            try:
                result = get_index_build_status(
                    self.client,
                    IndexBuildStatusRequest(
                        organization_id=config.organization_id,
                        project_id=config.project_id,
                        cluster_id=config.cluster_id,
                        bucket=config.bucket_name,
                        index_name=index_name,
                        scope=scope,
                        collection=collection,
                    ),
                )
            except CapellaError as exc:
                raise ActionError(
                    "Get Index Build Status Failed",
                    f"Cannot get index build status for index {index_name}.  Error: {exc}\n",
                ) from exc
            status = result.status if result is not None else ""
            report(f"Index: {index_name}, Status: {status}")
            if status == CREATED_STATUS:
                to_build.append(index_name)

        if not to_build:
            report(NOTHING_TO_BUILD)
            return []

        report(f"The following indexes need built: {_format_names(to_build)}")

        try:
            build_deferred_indexes(
                self.client,
                IndexBuildRequest(
                    organization_id=config.organization_id,
                    project_id=config.project_id,
                    cluster_id=config.cluster_id,
                    bucket=config.bucket_name,
                    index_names=tuple(to_build),
                    scope=scope,
                    collection=collection,
                ),
            )
        except CapellaError as exc:
            raise ActionError(
                "Build Deferred Indexes Failed",
                f"Cannot build deferred indexes.  Error: {exc}\n",
            ) from exc

        report(FINISHED)
        return to_build