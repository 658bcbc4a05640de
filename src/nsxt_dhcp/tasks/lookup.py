"""
Lookup tasks.

These tasks discover objects this engine does not own and record their ids.
They never create, update or delete, and a miss is always fatal.

Edge cluster
Matched by display name from InfraSpec.

Logical switch
The Manager API has no link from the DHCP topology to the segment, so we
scan every switch for the correlation tag whose value is the segment policy
path recorded in state.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from nsxt_dhcp.core.errors import (
    DependencyMissingError,
    LookupNotFoundError,
    ReadingError,
    TransportError,
)
from nsxt_dhcp.core.types import InfraSpec, InfraState, Reference
from nsxt_dhcp.execution.base import HTTP_OK, ApiResponse, NsxtClient
from nsxt_dhcp.tasks.base import TaskMeta, TaskSettings, expect_status

logger = logging.getLogger(__name__)


def _list(call: Callable[[], ApiResponse]) -> ApiResponse:
    try:
        response = call()
    except TransportError as exc:
        raise ReadingError(exc, operation="listing") from exc
    expect_status("listing", response, HTTP_OK)
    return response


def _record(state: InfraState, name: str, found_id: str, label: str) -> None:
    """Store a discovered id. A changed identity passes through None."""
    dhcp = state.advanced_dhcp
    current = dhcp.reference(name).id
    if current is not None and current != found_id:
        logger.warning("%s changed from %s to %s", label, current, found_id)
        dhcp.forget(name)
    dhcp.assign(name, found_id)


class LookupEdgeClusterTask:
    """Find the edge cluster named in InfraSpec."""

    ref_field = "edge_cluster_id"

    def __init__(self) -> None:
        self.meta = TaskMeta(label="edge cluster lookup")

    def name(self, spec: InfraSpec) -> Optional[str]:
        return spec.edge_cluster_name

    def reference(self, state: InfraState) -> Reference:
        return state.advanced_dhcp.reference(self.ref_field)

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        name = spec.edge_cluster_name
        response = _list(client.list_edge_clusters)

        for obj in response.value or []:
            if obj.display_name == name:
                _record(state, self.ref_field, obj.id, self.meta.label)
                logger.debug("%s found %s", self.meta.label, obj.id)
                return

        raise LookupNotFoundError("edge cluster", name)


class LookupLogicalSwitchTask:
    """Find the logical switch backing the worker segment."""

    ref_field = "logical_switch_id"

    def __init__(self, settings: TaskSettings | None = None) -> None:
        self.meta = TaskMeta(label="logical switch lookup")
        self._settings = settings or TaskSettings()

    def reference(self, state: InfraState) -> Reference:
        return state.advanced_dhcp.reference(self.ref_field)

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        path = state.segment_path
        if path is None:
            raise DependencyMissingError(self.meta.label, "segment_path")

        scope = self._settings.correlation_scope
        response = _list(client.list_logical_switches)

        for obj in response.value or []:
            for tag in obj.tags:
                if tag.scope == scope and tag.value == path:
                    _record(state, self.ref_field, obj.id, self.meta.label)
                    logger.debug("%s found %s", self.meta.label, obj.id)
                    return

        raise LookupNotFoundError("logical switch", f"segment path {path}")
