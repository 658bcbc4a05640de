"""
State persistence shape.

The caller persists InfraState between passes, usually as a JSON blob in the
status of its infrastructure object. These helpers define that shape.

Absent references are stored as null and restored as None.
"""

from __future__ import annotations

from dataclasses import asdict, fields
from typing import Any

from nsxt_dhcp.core.types import AdvancedDhcpState, InfraState


def _optional_str(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string or null")
    return value


def state_to_dict(state: InfraState) -> dict[str, Any]:
    """Convert InfraState into a JSON safe dict."""
    return asdict(state)


def state_from_dict(data: Any) -> InfraState:
    """
    Restore InfraState from state_to_dict output.

    Unknown keys are ignored so older engines can read newer blobs.
    Missing keys restore as None.
    """
    if data is None:
        return InfraState()
    if not isinstance(data, dict):
        raise ValueError("state must be an object")

    raw_dhcp = data.get("advanced_dhcp") or {}
    if not isinstance(raw_dhcp, dict):
        raise ValueError("advanced_dhcp must be an object")

    dhcp = AdvancedDhcpState()
    for f in fields(AdvancedDhcpState):
        setattr(dhcp, f.name, _optional_str(raw_dhcp.get(f.name), f"advanced_dhcp.{f.name}"))

    return InfraState(
        segment_path=_optional_str(data.get("segment_path"), "segment_path"),
        advanced_dhcp=dhcp,
    )
