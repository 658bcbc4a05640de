"""
DHCP tasks.

Each task owns one object of the advanced DHCP topology:

DhcpProfileTask
Profile on the edge cluster found by the edge cluster lookup.

DhcpServerTask
Logical DHCP server using the profile. Server and gateway addresses are
derived from the worker subnet.

DhcpPortTask
Logical port on the worker switch, attached to the DHCP server.

DhcpIpPoolTask
Address pool on the DHCP server, from host offset 10 to the last usable
host of the worker subnet.

The create, read, update and delete flow is shared, see tasks.base.
These classes only build the desired object, diff it and route calls.
"""

from __future__ import annotations

import logging

from nsxt_dhcp.core.addresses import derive_worker_addresses
from nsxt_dhcp.core.compare import FieldDiff
from nsxt_dhcp.core.resources import (
    ADMIN_STATE_UP,
    ATTACHMENT_TYPE_DHCP_SERVICE,
    DhcpIpPool,
    DhcpProfile,
    IpPoolRange,
    Ipv4DhcpServer,
    LogicalDhcpServer,
    LogicalPort,
    LogicalPortAttachment,
)
from nsxt_dhcp.core.types import InfraSpec, InfraState, Reference
from nsxt_dhcp.execution.base import ApiResponse, NsxtClient
from nsxt_dhcp.tasks.base import (
    TaskMeta,
    TaskSettings,
    converge_owned,
    remove_owned,
    require_reference,
)

logger = logging.getLogger(__name__)


class DhcpProfileTask:
    """DHCP server profile bound to the looked up edge cluster."""

    ref_field = "profile_id"

    def __init__(self, settings: TaskSettings | None = None) -> None:
        self.meta = TaskMeta(label="DHCP profile")
        self._settings = settings or TaskSettings()

    def reference(self, state: InfraState) -> Reference:
        return state.advanced_dhcp.reference(self.ref_field)

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        converge_owned(self, client, spec, state)

    def ensure_deleted(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> bool:
        return remove_owned(self, client, state)

    def desired(self, spec: InfraSpec, state: InfraState) -> DhcpProfile:
        return DhcpProfile(
            display_name=spec.full_cluster_name(),
            description=self._settings.description,
            edge_cluster_id=require_reference(self.meta, state, "edge_cluster_id"),
            tags=spec.create_common_tags(),
        )

    def diff(self, current: DhcpProfile, desired: DhcpProfile) -> FieldDiff:
        diff = FieldDiff()
        diff.scalar("display_name", current.display_name, desired.display_name)
        diff.scalar("edge_cluster_id", current.edge_cluster_id, desired.edge_cluster_id)
        diff.tags("tags", current.tags, desired.tags)
        return diff

    def read(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.read_dhcp_profile(object_id)

    def create(self, client: NsxtClient, state: InfraState, obj: DhcpProfile) -> ApiResponse:
        return client.create_dhcp_profile(obj)

    def update(self, client: NsxtClient, state: InfraState, object_id: str, obj: DhcpProfile) -> ApiResponse:
        return client.update_dhcp_profile(object_id, obj)

    def delete(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.delete_dhcp_profile(object_id)


class DhcpServerTask:
    """Logical DHCP server serving the worker subnet."""

    ref_field = "server_id"

    def __init__(self, settings: TaskSettings | None = None) -> None:
        self.meta = TaskMeta(label="DHCP server")
        self._settings = settings or TaskSettings()

    def reference(self, state: InfraState) -> Reference:
        return state.advanced_dhcp.reference(self.ref_field)

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        converge_owned(self, client, spec, state)

    def ensure_deleted(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> bool:
        return remove_owned(self, client, state)

    def desired(self, spec: InfraSpec, state: InfraState) -> LogicalDhcpServer:
        profile_id = require_reference(self.meta, state, "profile_id")
        addresses = derive_worker_addresses(spec.workers_network, self._settings.pool_start_offset)

        return LogicalDhcpServer(
            display_name=spec.full_cluster_name(),
            description=self._settings.description,
            dhcp_profile_id=profile_id,
            ipv4_dhcp_server=Ipv4DhcpServer(
                dhcp_server_ip=addresses.dhcp_server_cidr,
                gateway_ip=addresses.gateway_ip,
                dns_nameservers=list(spec.dns_servers),
            ),
            tags=spec.create_common_tags(),
        )

    def diff(self, current: LogicalDhcpServer, desired: LogicalDhcpServer) -> FieldDiff:
        diff = FieldDiff()
        diff.scalar("display_name", current.display_name, desired.display_name)
        diff.scalar("dhcp_profile_id", current.dhcp_profile_id, desired.dhcp_profile_id)

        old, new = current.ipv4_dhcp_server, desired.ipv4_dhcp_server
        if old is None or new is None:
            diff.missing("ipv4_dhcp_server")
        else:
            diff.scalar("dhcp_server_ip", old.dhcp_server_ip, new.dhcp_server_ip)
            diff.scalar("gateway_ip", old.gateway_ip, new.gateway_ip)
            diff.ordered("dns_nameservers", old.dns_nameservers, new.dns_nameservers)

        diff.tags("tags", current.tags, desired.tags)
        return diff

    def read(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.read_dhcp_server(object_id)

    def create(self, client: NsxtClient, state: InfraState, obj: LogicalDhcpServer) -> ApiResponse:
        return client.create_dhcp_server(obj)

    def update(self, client: NsxtClient, state: InfraState, object_id: str, obj: LogicalDhcpServer) -> ApiResponse:
        return client.update_dhcp_server(object_id, obj)

    def delete(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.delete_dhcp_server(object_id)


class DhcpPortTask:
    """Logical port attaching the DHCP server to the worker switch."""

    ref_field = "port_id"

    def __init__(self, settings: TaskSettings | None = None) -> None:
        self.meta = TaskMeta(label="DHCP port")
        self._settings = settings or TaskSettings()

    def reference(self, state: InfraState) -> Reference:
        return state.advanced_dhcp.reference(self.ref_field)

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        converge_owned(self, client, spec, state)

    def ensure_deleted(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> bool:
        return remove_owned(self, client, state)

    def desired(self, spec: InfraSpec, state: InfraState) -> LogicalPort:
        server_id = require_reference(self.meta, state, "server_id")
        switch_id = require_reference(self.meta, state, "logical_switch_id")

        return LogicalPort(
            display_name=spec.full_cluster_name(),
            description=self._settings.description,
            logical_switch_id=switch_id,
            admin_state=ADMIN_STATE_UP,
            attachment=LogicalPortAttachment(
                attachment_type=ATTACHMENT_TYPE_DHCP_SERVICE,
                id=server_id,
            ),
            tags=spec.create_common_tags(),
        )

    def diff(self, current: LogicalPort, desired: LogicalPort) -> FieldDiff:
        diff = FieldDiff()
        diff.scalar("display_name", current.display_name, desired.display_name)
        diff.scalar("logical_switch_id", current.logical_switch_id, desired.logical_switch_id)
        diff.scalar("admin_state", current.admin_state, desired.admin_state)

        old, new = current.attachment, desired.attachment
        if old is None or new is None:
            diff.missing("attachment")
        else:
            diff.scalar("attachment_type", old.attachment_type, new.attachment_type)
            diff.scalar("attachment_id", old.id, new.id)

        diff.tags("tags", current.tags, desired.tags)
        return diff

    def read(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.read_logical_port(object_id)

    def create(self, client: NsxtClient, state: InfraState, obj: LogicalPort) -> ApiResponse:
        return client.create_logical_port(obj)

    def update(self, client: NsxtClient, state: InfraState, object_id: str, obj: LogicalPort) -> ApiResponse:
        return client.update_logical_port(object_id, obj)

    def delete(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.delete_logical_port(object_id, detach=True)


class DhcpIpPoolTask:
    """
    Address pool of the DHCP server.

    The pool lives inside its server, so every call needs the server id.
    """

    ref_field = "ip_pool_id"

    def __init__(self, settings: TaskSettings | None = None) -> None:
        self.meta = TaskMeta(label="DHCP IP pool")
        self._settings = settings or TaskSettings()

    def reference(self, state: InfraState) -> Reference:
        return state.advanced_dhcp.reference(self.ref_field)

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        converge_owned(self, client, spec, state)

    def ensure_deleted(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> bool:
        dhcp = state.advanced_dhcp
        if dhcp.ip_pool_id is not None and dhcp.server_id is None:
            # pools are removed together with their server
            logger.info("%s %s has no server, forgetting it", self.meta.label, dhcp.ip_pool_id)
            dhcp.forget(self.ref_field)
            return False
        return remove_owned(self, client, state)

    def desired(self, spec: InfraSpec, state: InfraState) -> DhcpIpPool:
        require_reference(self.meta, state, "server_id")
        settings = self._settings
        addresses = derive_worker_addresses(spec.workers_network, settings.pool_start_offset)

        return DhcpIpPool(
            display_name=spec.full_cluster_name(),
            description=settings.description,
            gateway_ip=addresses.gateway_ip,
            lease_time=settings.lease_time,
            error_threshold=settings.error_threshold,
            warning_threshold=settings.warning_threshold,
            allocation_ranges=[IpPoolRange(start=addresses.pool_start, end=addresses.pool_end)],
            tags=spec.create_common_tags(),
        )

    def diff(self, current: DhcpIpPool, desired: DhcpIpPool) -> FieldDiff:
        diff = FieldDiff()
        diff.scalar("display_name", current.display_name, desired.display_name)
        diff.scalar("gateway_ip", current.gateway_ip, desired.gateway_ip)
        diff.scalar("lease_time", current.lease_time, desired.lease_time)
        diff.scalar("error_threshold", current.error_threshold, desired.error_threshold)
        diff.scalar("warning_threshold", current.warning_threshold, desired.warning_threshold)
        diff.ordered("allocation_ranges", current.allocation_ranges, desired.allocation_ranges)
        diff.tags("tags", current.tags, desired.tags)
        return diff

    def read(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.read_dhcp_ip_pool(require_reference(self.meta, state, "server_id"), object_id)

    def create(self, client: NsxtClient, state: InfraState, obj: DhcpIpPool) -> ApiResponse:
        return client.create_dhcp_ip_pool(require_reference(self.meta, state, "server_id"), obj)

    def update(self, client: NsxtClient, state: InfraState, object_id: str, obj: DhcpIpPool) -> ApiResponse:
        return client.update_dhcp_ip_pool(require_reference(self.meta, state, "server_id"), object_id, obj)

    def delete(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse:
        return client.delete_dhcp_ip_pool(require_reference(self.meta, state, "server_id"), object_id)
