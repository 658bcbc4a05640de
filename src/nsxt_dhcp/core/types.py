"""
Core types.

This file defines the desired state input and the persisted state shared by
every task.

Important design choice
An absent identifier is None, never an empty string.
An empty string may be a valid backend identifier.

State ownership
InfraState is owned by the caller. Tasks mutate it in place and the caller
persists it between passes. It is never rebuilt from InfraSpec.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional, Tuple


@dataclass(frozen=True)
class Reference:
    """
    Handle to a remote object identifier.

    id is None when the object was not created yet or was forgotten.
    """

    id: Optional[str] = None

    @property
    def is_set(self) -> bool:
        return self.id is not None


@dataclass(frozen=True)
class Tag:
    """
    Remote object tag.

    Tag sets compare as multisets, see core.compare.equal_tags.
    """

    scope: str
    value: str


@dataclass(frozen=True)
class InfraSpec:
    """
    Desired state for one reconciliation pass.

    cluster_name
    Identity of the cluster, used in display names and tags.

    workers_network
    Worker subnet CIDR. Gateway, DHCP server and pool addresses are derived
    from it.

    dns_servers
    Ordered list of name servers handed out by DHCP. Order matters.

    edge_cluster_name
    Display name of the edge cluster hosting the DHCP service.

    name_prefix
    Optional prefix for display names.

    owner
    Provenance tag value stamped on every created object.

    extra_tags
    Additional tags appended to the common tag set.
    """

    cluster_name: str
    workers_network: str
    dns_servers: Tuple[str, ...]
    edge_cluster_name: str
    name_prefix: str = ""
    owner: str = "nsxt-dhcp"
    extra_tags: Tuple[Tag, ...] = ()

    def full_cluster_name(self) -> str:
        if self.name_prefix:
            return f"{self.name_prefix}-{self.cluster_name}"
        return self.cluster_name

    def create_common_tags(self) -> list[Tag]:
        """Return the deterministic provenance tag set for created objects."""
        tags = [
            Tag(scope="owner", value=self.owner),
            Tag(scope="cluster", value=self.cluster_name),
        ]
        tags.extend(self.extra_tags)
        return tags


@dataclass
class AdvancedDhcpState:
    """
    Identifiers of the advanced DHCP topology.

    edge_cluster_id and logical_switch_id are discovered by lookup tasks.
    The other ids belong to objects created by this engine.
    """

    edge_cluster_id: Optional[str] = None
    profile_id: Optional[str] = None
    server_id: Optional[str] = None
    logical_switch_id: Optional[str] = None
    port_id: Optional[str] = None
    ip_pool_id: Optional[str] = None

    def reference(self, name: str) -> Reference:
        return Reference(id=self._get(name))

    def assign(self, name: str, value: str) -> None:
        """
        Store an identifier.

        A set reference may only be assigned its current value. Changing
        identity requires forget first.
        """
        current = self._get(name)
        if current is not None and current != value:
            raise ValueError(f"{name} is already set to {current!r}, forget it before assigning {value!r}")
        setattr(self, name, value)

    def forget(self, name: str) -> None:
        self._get(name)
        setattr(self, name, None)

    def _get(self, name: str) -> Optional[str]:
        if name not in _ADVANCED_DHCP_FIELDS:
            raise KeyError(f"unknown reference {name!r}")
        return getattr(self, name)


_ADVANCED_DHCP_FIELDS = frozenset(f.name for f in fields(AdvancedDhcpState))


@dataclass
class InfraState:
    """
    Persisted reconciliation state.

    segment_path
    Policy path of the worker segment, provisioned before this engine runs.
    The logical switch lookup correlates on it.
    """

    segment_path: Optional[str] = None
    advanced_dhcp: AdvancedDhcpState = field(default_factory=AdvancedDhcpState)
