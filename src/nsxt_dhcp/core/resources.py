"""
Remote object shapes.

These mirror the NSX-T Manager API objects the engine manages.
Field names follow the API in snake case so the codec stays a thin mapping.

id is None for objects built locally that were not created yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from nsxt_dhcp.core.types import Tag

ATTACHMENT_TYPE_DHCP_SERVICE = "DHCP_SERVICE"
ADMIN_STATE_UP = "UP"


@dataclass
class EdgeCluster:
    id: str
    display_name: str


@dataclass
class LogicalSwitch:
    id: str
    display_name: str
    tags: List[Tag] = field(default_factory=list)


@dataclass
class DhcpProfile:
    display_name: str
    edge_cluster_id: str
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    id: Optional[str] = None


@dataclass
class Ipv4DhcpServer:
    """
    IPv4 settings of a logical DHCP server.

    dhcp_server_ip carries the prefix length, for example 10.0.0.2/24.
    """

    dhcp_server_ip: str
    gateway_ip: str
    dns_nameservers: List[str] = field(default_factory=list)


@dataclass
class LogicalDhcpServer:
    display_name: str
    dhcp_profile_id: str
    ipv4_dhcp_server: Optional[Ipv4DhcpServer] = None
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    id: Optional[str] = None


@dataclass
class LogicalPortAttachment:
    attachment_type: str
    id: str


@dataclass
class LogicalPort:
    display_name: str
    logical_switch_id: str
    admin_state: str = ADMIN_STATE_UP
    attachment: Optional[LogicalPortAttachment] = None
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    id: Optional[str] = None


@dataclass
class IpPoolRange:
    start: str
    end: str


@dataclass
class DhcpIpPool:
    """
    Address pool served by a logical DHCP server.

    error_threshold and warning_threshold are usage percentages.
    lease_time is in seconds.
    """

    display_name: str
    gateway_ip: str
    lease_time: int
    error_threshold: int
    warning_threshold: int
    allocation_ranges: List[IpPoolRange] = field(default_factory=list)
    description: str = ""
    tags: List[Tag] = field(default_factory=list)
    id: Optional[str] = None
