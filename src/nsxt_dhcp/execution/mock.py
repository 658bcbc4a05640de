"""
In memory NSX-T client.

This client is used for tests and local simulations.
It behaves like a small object database keyed by generated ids.

Features
- Records every call by operation name
- Returns copies so callers cannot mutate stored objects by accident
- Raises RemoteNotFound for missing objects like the real API
- Can inject a status code or an exception for the next call of an operation
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Union

from nsxt_dhcp.core.errors import RemoteNotFound, TransportError
from nsxt_dhcp.core.resources import (
    DhcpIpPool,
    DhcpProfile,
    EdgeCluster,
    LogicalDhcpServer,
    LogicalPort,
    LogicalSwitch,
)
from nsxt_dhcp.execution.base import HTTP_CREATED, HTTP_OK, ApiResponse, NsxtClient

WRITE_PREFIXES = ("create_", "update_", "delete_")


@dataclass
class InMemoryNsxtClient(NsxtClient):
    """
    In memory NSX-T client.

    edge_clusters and logical_switches
    Seed data for lookup tasks. They are never written by the engine.

    failures
    Mapping of operation name to an exception or a status code.
    The entry is consumed by the next call of that operation.
    An exception is raised, a status code is returned without a value.

    pools
    IP pools keyed by server id, then pool id. Deleting a server drops its
    pools.
    """

    edge_clusters: List[EdgeCluster] = field(default_factory=list)
    logical_switches: List[LogicalSwitch] = field(default_factory=list)
    profiles: Dict[str, DhcpProfile] = field(default_factory=dict)
    servers: Dict[str, LogicalDhcpServer] = field(default_factory=dict)
    ports: Dict[str, LogicalPort] = field(default_factory=dict)
    pools: Dict[str, Dict[str, DhcpIpPool]] = field(default_factory=dict)
    failures: Dict[str, Union[BaseException, int]] = field(default_factory=dict)
    calls: List[str] = field(default_factory=list)
    _counter: int = 0

    @property
    def writes(self) -> List[str]:
        """Return recorded calls that modify remote state."""
        return [c for c in self.calls if c.startswith(WRITE_PREFIXES)]

    def _begin(self, operation: str) -> Optional[ApiResponse]:
        self.calls.append(operation)
        injected = self.failures.pop(operation, None)
        if injected is None:
            return None
        if isinstance(injected, BaseException):
            raise injected
        return ApiResponse(status=injected)

    def _next_id(self, kind: str) -> str:
        self._counter += 1
        return f"{kind}-{self._counter}"

    def _server_pools(self, server_id: str) -> Dict[str, DhcpIpPool]:
        if server_id not in self.servers:
            raise RemoteNotFound(f"dhcp server {server_id}")
        return self.pools.setdefault(server_id, {})

    def list_edge_clusters(self) -> ApiResponse:
        injected = self._begin("list_edge_clusters")
        if injected is not None:
            return injected
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.edge_clusters))

    def create_dhcp_profile(self, profile: DhcpProfile) -> ApiResponse:
        injected = self._begin("create_dhcp_profile")
        if injected is not None:
            return injected
        stored = replace(deepcopy(profile), id=self._next_id("profile"))
        self.profiles[stored.id] = stored
        return ApiResponse(status=HTTP_CREATED, value=deepcopy(stored))

    def read_dhcp_profile(self, profile_id: str) -> ApiResponse:
        injected = self._begin("read_dhcp_profile")
        if injected is not None:
            return injected
        if profile_id not in self.profiles:
            raise RemoteNotFound(f"dhcp profile {profile_id}")
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.profiles[profile_id]))

    def update_dhcp_profile(self, profile_id: str, profile: DhcpProfile) -> ApiResponse:
        injected = self._begin("update_dhcp_profile")
        if injected is not None:
            return injected
        if profile_id not in self.profiles:
            raise RemoteNotFound(f"dhcp profile {profile_id}")
        self.profiles[profile_id] = replace(deepcopy(profile), id=profile_id)
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.profiles[profile_id]))

    def delete_dhcp_profile(self, profile_id: str) -> ApiResponse:
        injected = self._begin("delete_dhcp_profile")
        if injected is not None:
            return injected
        if self.profiles.pop(profile_id, None) is None:
            raise RemoteNotFound(f"dhcp profile {profile_id}")
        return ApiResponse(status=HTTP_OK)

    def create_dhcp_server(self, server: LogicalDhcpServer) -> ApiResponse:
        injected = self._begin("create_dhcp_server")
        if injected is not None:
            return injected
        stored = replace(deepcopy(server), id=self._next_id("server"))
        self.servers[stored.id] = stored
        return ApiResponse(status=HTTP_CREATED, value=deepcopy(stored))

    def read_dhcp_server(self, server_id: str) -> ApiResponse:
        injected = self._begin("read_dhcp_server")
        if injected is not None:
            return injected
        if server_id not in self.servers:
            raise RemoteNotFound(f"dhcp server {server_id}")
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.servers[server_id]))

    def update_dhcp_server(self, server_id: str, server: LogicalDhcpServer) -> ApiResponse:
        injected = self._begin("update_dhcp_server")
        if injected is not None:
            return injected
        if server_id not in self.servers:
            raise RemoteNotFound(f"dhcp server {server_id}")
        self.servers[server_id] = replace(deepcopy(server), id=server_id)
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.servers[server_id]))

    def delete_dhcp_server(self, server_id: str) -> ApiResponse:
        injected = self._begin("delete_dhcp_server")
        if injected is not None:
            return injected
        if self.servers.pop(server_id, None) is None:
            raise RemoteNotFound(f"dhcp server {server_id}")
        self.pools.pop(server_id, None)
        return ApiResponse(status=HTTP_OK)

    def list_logical_switches(self) -> ApiResponse:
        injected = self._begin("list_logical_switches")
        if injected is not None:
            return injected
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.logical_switches))

    def create_logical_port(self, port: LogicalPort) -> ApiResponse:
        injected = self._begin("create_logical_port")
        if injected is not None:
            return injected
        stored = replace(deepcopy(port), id=self._next_id("port"))
        self.ports[stored.id] = stored
        return ApiResponse(status=HTTP_CREATED, value=deepcopy(stored))

    def read_logical_port(self, port_id: str) -> ApiResponse:
        injected = self._begin("read_logical_port")
        if injected is not None:
            return injected
        if port_id not in self.ports:
            raise RemoteNotFound(f"logical port {port_id}")
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.ports[port_id]))

    def update_logical_port(self, port_id: str, port: LogicalPort) -> ApiResponse:
        injected = self._begin("update_logical_port")
        if injected is not None:
            return injected
        if port_id not in self.ports:
            raise RemoteNotFound(f"logical port {port_id}")
        self.ports[port_id] = replace(deepcopy(port), id=port_id)
        return ApiResponse(status=HTTP_OK, value=deepcopy(self.ports[port_id]))

    def delete_logical_port(self, port_id: str, detach: bool = False) -> ApiResponse:
        injected = self._begin("delete_logical_port")
        if injected is not None:
            return injected
        port = self.ports.get(port_id)
        if port is None:
            raise RemoteNotFound(f"logical port {port_id}")
        if port.attachment is not None and not detach:
            raise TransportError(f"logical port {port_id} has an attachment", status=400)
        del self.ports[port_id]
        return ApiResponse(status=HTTP_OK)

    def create_dhcp_ip_pool(self, server_id: str, pool: DhcpIpPool) -> ApiResponse:
        injected = self._begin("create_dhcp_ip_pool")
        if injected is not None:
            return injected
        pools = self._server_pools(server_id)
        stored = replace(deepcopy(pool), id=self._next_id("pool"))
        pools[stored.id] = stored
        return ApiResponse(status=HTTP_CREATED, value=deepcopy(stored))

    def read_dhcp_ip_pool(self, server_id: str, pool_id: str) -> ApiResponse:
        injected = self._begin("read_dhcp_ip_pool")
        if injected is not None:
            return injected
        pools = self._server_pools(server_id)
        if pool_id not in pools:
            raise RemoteNotFound(f"dhcp ip pool {pool_id}")
        return ApiResponse(status=HTTP_OK, value=deepcopy(pools[pool_id]))

    def update_dhcp_ip_pool(self, server_id: str, pool_id: str, pool: DhcpIpPool) -> ApiResponse:
        injected = self._begin("update_dhcp_ip_pool")
        if injected is not None:
            return injected
        pools = self._server_pools(server_id)
        if pool_id not in pools:
            raise RemoteNotFound(f"dhcp ip pool {pool_id}")
        pools[pool_id] = replace(deepcopy(pool), id=pool_id)
        return ApiResponse(status=HTTP_OK, value=deepcopy(pools[pool_id]))

    def delete_dhcp_ip_pool(self, server_id: str, pool_id: str) -> ApiResponse:
        injected = self._begin("delete_dhcp_ip_pool")
        if injected is not None:
            return injected
        pools = self._server_pools(server_id)
        if pools.pop(pool_id, None) is None:
            raise RemoteNotFound(f"dhcp ip pool {pool_id}")
        return ApiResponse(status=HTTP_OK)
