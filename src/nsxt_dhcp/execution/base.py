"""
Remote API interfaces.

Goal
Define a stable interface for the NSX-T objects the engine manages without
binding the tasks to a specific transport.

Contract for every call
Return an ApiResponse carrying the HTTP status and the decoded object.
Raise TransportError when the call fails, RemoteNotFound when the object
does not exist.

A response with an unexpected status and no exception is still a failure.
Tasks check the status of every response, see tasks.base.
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Protocol

from nsxt_dhcp.core.resources import (
    DhcpIpPool,
    DhcpProfile,
    LogicalDhcpServer,
    LogicalPort,
)

HTTP_OK = int(HTTPStatus.OK)
HTTP_CREATED = int(HTTPStatus.CREATED)
HTTP_NOT_FOUND = int(HTTPStatus.NOT_FOUND)


@dataclass(frozen=True)
class ApiResponse:
    """
    Result of a remote call.

    status
    HTTP status code.

    value
    Decoded object, a list for list calls, None for delete calls.
    """

    status: int
    value: Any = None


class NsxtClient(Protocol):
    """
    Minimal NSX-T Manager shaped client interface.

    Real implementations wrap the REST API, see execution.manager.
    We keep the interface narrow for testability, see execution.mock.
    """

    def list_edge_clusters(self) -> ApiResponse:
        """Return all edge clusters as List[EdgeCluster]."""

    def create_dhcp_profile(self, profile: DhcpProfile) -> ApiResponse:
        """Create a DHCP profile and return it with its id."""

    def read_dhcp_profile(self, profile_id: str) -> ApiResponse:
        """Read a DHCP profile by id."""

    def update_dhcp_profile(self, profile_id: str, profile: DhcpProfile) -> ApiResponse:
        """Replace a DHCP profile."""

    def delete_dhcp_profile(self, profile_id: str) -> ApiResponse:
        """Delete a DHCP profile."""

    def create_dhcp_server(self, server: LogicalDhcpServer) -> ApiResponse:
        """Create a logical DHCP server and return it with its id."""

    def read_dhcp_server(self, server_id: str) -> ApiResponse:
        """Read a logical DHCP server by id."""

    def update_dhcp_server(self, server_id: str, server: LogicalDhcpServer) -> ApiResponse:
        """Replace a logical DHCP server."""

    def delete_dhcp_server(self, server_id: str) -> ApiResponse:
        """Delete a logical DHCP server."""

    def list_logical_switches(self) -> ApiResponse:
        """Return all logical switches as List[LogicalSwitch]."""

    def create_logical_port(self, port: LogicalPort) -> ApiResponse:
        """Create a logical port and return it with its id."""

    def read_logical_port(self, port_id: str) -> ApiResponse:
        """Read a logical port by id."""

    def update_logical_port(self, port_id: str, port: LogicalPort) -> ApiResponse:
        """Replace a logical port."""

    def delete_logical_port(self, port_id: str, detach: bool = False) -> ApiResponse:
        """Delete a logical port, detaching its attachment when detach is True."""

    def create_dhcp_ip_pool(self, server_id: str, pool: DhcpIpPool) -> ApiResponse:
        """Create an IP pool on a DHCP server and return it with its id."""

    def read_dhcp_ip_pool(self, server_id: str, pool_id: str) -> ApiResponse:
        """Read an IP pool of a DHCP server."""

    def update_dhcp_ip_pool(self, server_id: str, pool_id: str, pool: DhcpIpPool) -> ApiResponse:
        """Replace an IP pool of a DHCP server."""

    def delete_dhcp_ip_pool(self, server_id: str, pool_id: str) -> ApiResponse:
        """Delete an IP pool of a DHCP server."""

