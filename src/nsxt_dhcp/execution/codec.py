"""
NSX-T Manager wire codec.

Converts between the JSON payloads of the Manager API and the resource
dataclasses in core.resources.

Encoding omits id, the Manager API takes ids from the url.
Decoding is strict about the fields the engine diffs on and lenient about the
rest. A malformed payload raises PayloadError.
"""

from __future__ import annotations

from typing import Any, Callable, List, TypeVar

from nsxt_dhcp.core.errors import PayloadError
from nsxt_dhcp.core.resources import (
    DhcpIpPool,
    DhcpProfile,
    EdgeCluster,
    IpPoolRange,
    Ipv4DhcpServer,
    LogicalDhcpServer,
    LogicalPort,
    LogicalPortAttachment,
    LogicalSwitch,
)
from nsxt_dhcp.core.types import Tag

T = TypeVar("T")


def _require_dict(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise PayloadError(f"{name} must be an object")
    return value


def _require_list(value: Any, name: str) -> list[Any]:
    if not isinstance(value, list):
        raise PayloadError(f"{name} must be a list")
    return value


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise PayloadError(f"{name} must be a string")
    return value


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise PayloadError(f"{name} must be an integer")
    return value


def _optional_str(value: Any, name: str, default: str = "") -> str:
    if value is None:
        return default
    return _require_str(value, name)


def encode_tags(tags: List[Tag]) -> list[dict[str, str]]:
    return [{"scope": t.scope, "tag": t.value} for t in tags]


def decode_tags(value: Any) -> list[Tag]:
    if value is None:
        return []
    tags = []
    for raw in _require_list(value, "tags"):
        obj = _require_dict(raw, "tag")
        tags.append(
            Tag(
                scope=_optional_str(obj.get("scope"), "tag.scope"),
                value=_optional_str(obj.get("tag"), "tag.tag"),
            )
        )
    return tags


def decode_results(payload: Any, decode: Callable[[Any], T]) -> tuple[list[T], str | None]:
    """
    Decode one page of a list response.

    Returns the decoded items and the cursor of the next page, None on the
    last page.
    """
    obj = _require_dict(payload, "list result")
    results = [decode(item) for item in _require_list(obj.get("results", []), "results")]
    cursor = obj.get("cursor")
    if cursor in (None, ""):
        return results, None
    return results, _require_str(cursor, "cursor")


def decode_edge_cluster(payload: Any) -> EdgeCluster:
    obj = _require_dict(payload, "edge cluster")
    return EdgeCluster(
        id=_require_str(obj.get("id"), "id"),
        display_name=_optional_str(obj.get("display_name"), "display_name"),
    )


def decode_logical_switch(payload: Any) -> LogicalSwitch:
    obj = _require_dict(payload, "logical switch")
    return LogicalSwitch(
        id=_require_str(obj.get("id"), "id"),
        display_name=_optional_str(obj.get("display_name"), "display_name"),
        tags=decode_tags(obj.get("tags")),
    )


def encode_dhcp_profile(profile: DhcpProfile) -> dict[str, Any]:
    return {
        "resource_type": "DhcpProfile",
        "display_name": profile.display_name,
        "description": profile.description,
        "edge_cluster_id": profile.edge_cluster_id,
        "tags": encode_tags(profile.tags),
    }


def decode_dhcp_profile(payload: Any) -> DhcpProfile:
    obj = _require_dict(payload, "dhcp profile")
    return DhcpProfile(
        id=_require_str(obj.get("id"), "id"),
        display_name=_optional_str(obj.get("display_name"), "display_name"),
        description=_optional_str(obj.get("description"), "description"),
        edge_cluster_id=_optional_str(obj.get("edge_cluster_id"), "edge_cluster_id"),
        tags=decode_tags(obj.get("tags")),
    )


def encode_dhcp_server(server: LogicalDhcpServer) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "resource_type": "LogicalDhcpServer",
        "display_name": server.display_name,
        "description": server.description,
        "dhcp_profile_id": server.dhcp_profile_id,
        "tags": encode_tags(server.tags),
    }
    ipv4 = server.ipv4_dhcp_server
    if ipv4 is not None:
        payload["ipv4_dhcp_server"] = {
            "dhcp_server_ip": ipv4.dhcp_server_ip,
            "gateway_ip": ipv4.gateway_ip,
            "dns_nameservers": list(ipv4.dns_nameservers),
        }
    return payload


def decode_dhcp_server(payload: Any) -> LogicalDhcpServer:
    obj = _require_dict(payload, "dhcp server")

    ipv4: Ipv4DhcpServer | None = None
    raw_ipv4 = obj.get("ipv4_dhcp_server")
    if raw_ipv4 is not None:
        ipv4_obj = _require_dict(raw_ipv4, "ipv4_dhcp_server")
        ipv4 = Ipv4DhcpServer(
            dhcp_server_ip=_optional_str(ipv4_obj.get("dhcp_server_ip"), "dhcp_server_ip"),
            gateway_ip=_optional_str(ipv4_obj.get("gateway_ip"), "gateway_ip"),
            dns_nameservers=[
                _require_str(s, "dns_nameservers")
                for s in _require_list(ipv4_obj.get("dns_nameservers", []), "dns_nameservers")
            ],
        )

    return LogicalDhcpServer(
        id=_require_str(obj.get("id"), "id"),
        display_name=_optional_str(obj.get("display_name"), "display_name"),
        description=_optional_str(obj.get("description"), "description"),
        dhcp_profile_id=_optional_str(obj.get("dhcp_profile_id"), "dhcp_profile_id"),
        ipv4_dhcp_server=ipv4,
        tags=decode_tags(obj.get("tags")),
    )


def encode_logical_port(port: LogicalPort) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "resource_type": "LogicalPort",
        "display_name": port.display_name,
        "description": port.description,
        "logical_switch_id": port.logical_switch_id,
        "admin_state": port.admin_state,
        "tags": encode_tags(port.tags),
    }
    if port.attachment is not None:
        payload["attachment"] = {
            "attachment_type": port.attachment.attachment_type,
            "id": port.attachment.id,
        }
    return payload


def decode_logical_port(payload: Any) -> LogicalPort:
    obj = _require_dict(payload, "logical port")

    attachment: LogicalPortAttachment | None = None
    raw_attachment = obj.get("attachment")
    if raw_attachment is not None:
        att = _require_dict(raw_attachment, "attachment")
        attachment = LogicalPortAttachment(
            attachment_type=_optional_str(att.get("attachment_type"), "attachment_type"),
            id=_optional_str(att.get("id"), "attachment.id"),
        )

    return LogicalPort(
        id=_require_str(obj.get("id"), "id"),
        display_name=_optional_str(obj.get("display_name"), "display_name"),
        description=_optional_str(obj.get("description"), "description"),
        logical_switch_id=_optional_str(obj.get("logical_switch_id"), "logical_switch_id"),
        admin_state=_optional_str(obj.get("admin_state"), "admin_state"),
        attachment=attachment,
        tags=decode_tags(obj.get("tags")),
    )


def encode_dhcp_ip_pool(pool: DhcpIpPool) -> dict[str, Any]:
    return {
        "resource_type": "DhcpIpPool",
        "display_name": pool.display_name,
        "description": pool.description,
        "gateway_ip": pool.gateway_ip,
        "lease_time": pool.lease_time,
        "error_threshold": pool.error_threshold,
        "warning_threshold": pool.warning_threshold,
        "allocation_ranges": [{"start": r.start, "end": r.end} for r in pool.allocation_ranges],
        "tags": encode_tags(pool.tags),
    }


def decode_dhcp_ip_pool(payload: Any) -> DhcpIpPool:
    obj = _require_dict(payload, "dhcp ip pool")

    ranges = []
    for raw in _require_list(obj.get("allocation_ranges", []), "allocation_ranges"):
        r = _require_dict(raw, "allocation range")
        ranges.append(
            IpPoolRange(
                start=_require_str(r.get("start"), "allocation_ranges.start"),
                end=_require_str(r.get("end"), "allocation_ranges.end"),
            )
        )

    return DhcpIpPool(
        id=_require_str(obj.get("id"), "id"),
        display_name=_optional_str(obj.get("display_name"), "display_name"),
        description=_optional_str(obj.get("description"), "description"),
        gateway_ip=_optional_str(obj.get("gateway_ip"), "gateway_ip"),
        lease_time=_require_int(obj.get("lease_time"), "lease_time"),
        error_threshold=_require_int(obj.get("error_threshold"), "error_threshold"),
        warning_threshold=_require_int(obj.get("warning_threshold"), "warning_threshold"),
        allocation_ranges=ranges,
        tags=decode_tags(obj.get("tags")),
    )
