"""
Address derivation.

All addresses of the DHCP topology are derived from the worker subnet CIDR.
Nothing here is persisted, the same CIDR always yields the same addresses.

Offsets
A non negative offset counts up from the network address.
A negative offset counts down from the broadcast address, so -1 is the last
usable host.
The resulting address must be a usable host, never the network or broadcast
address.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Union

from nsxt_dhcp.core.errors import AddressComputationError

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

GATEWAY_OFFSET = 1
DHCP_SERVER_OFFSET = 2
DEFAULT_POOL_START_OFFSET = 10
POOL_END_OFFSET = -1


def _parse(cidr: str, what: str) -> IPNetwork:
    try:
        return ipaddress.ip_network(cidr, strict=False)
    except ValueError as exc:
        raise AddressComputationError(what, cidr, str(exc)) from exc


def _host(network: IPNetwork, offset: int, what: str, cidr: str) -> IPAddress:
    size = network.num_addresses
    index = offset if offset >= 0 else size - 1 + offset

    if index < 1 or index > size - 2:
        raise AddressComputationError(
            what,
            cidr,
            f"host offset {offset} is outside the usable range of a /{network.prefixlen}",
        )

    return network.network_address + index


def cidr_host(cidr: str, offset: int, what: str = "host address") -> str:
    """Return the host address at offset within cidr."""
    network = _parse(cidr, what)
    return str(_host(network, offset, what, cidr))


def cidr_host_and_prefix(cidr: str, offset: int, what: str = "host address") -> str:
    """Return the host address at offset with the prefix length of cidr, e.g. 10.0.0.2/24."""
    network = _parse(cidr, what)
    return f"{_host(network, offset, what, cidr)}/{network.prefixlen}"


@dataclass(frozen=True)
class WorkerAddresses:
    """
    Addresses derived from the worker subnet.

    dhcp_server_cidr is the DHCP server address with prefix length, the form
    the remote API expects.
    """

    gateway_ip: str
    dhcp_server_ip: str
    dhcp_server_cidr: str
    pool_start: str
    pool_end: str


def derive_worker_addresses(
    cidr: str,
    pool_start_offset: int = DEFAULT_POOL_START_OFFSET,
) -> WorkerAddresses:
    """
    Derive gateway, DHCP server and pool range from the worker subnet.

    Example for 10.0.0.0/24:
    gateway 10.0.0.1, server 10.0.0.2, pool 10.0.0.10 to 10.0.0.254
    """
    network = _parse(cidr, "worker network")

    gateway = _host(network, GATEWAY_OFFSET, "gateway IP", cidr)
    server = _host(network, DHCP_SERVER_OFFSET, "DHCP server IP", cidr)
    start = _host(network, pool_start_offset, "start IP of pool", cidr)
    end = _host(network, POOL_END_OFFSET, "end IP of pool", cidr)

    if start > end:
        raise AddressComputationError("IP pool", cidr, f"pool start {start} is after pool end {end}")

    return WorkerAddresses(
        gateway_ip=str(gateway),
        dhcp_server_ip=str(server),
        dhcp_server_cidr=f"{server}/{network.prefixlen}",
        pool_start=str(start),
        pool_end=str(end),
    )
