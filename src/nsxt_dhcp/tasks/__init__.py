"""
Tasks package.

One task per resource kind of the advanced DHCP topology.
"""

from nsxt_dhcp.tasks.base import (
    DeletableTask,
    EnsurableTask,
    NameableTask,
    TaskMeta,
    TaskSettings,
)
from nsxt_dhcp.tasks.dhcp import DhcpIpPoolTask, DhcpPortTask, DhcpProfileTask, DhcpServerTask
from nsxt_dhcp.tasks.lookup import LookupEdgeClusterTask, LookupLogicalSwitchTask

__all__ = [
    "DeletableTask",
    "DhcpIpPoolTask",
    "DhcpPortTask",
    "DhcpProfileTask",
    "DhcpServerTask",
    "EnsurableTask",
    "LookupEdgeClusterTask",
    "LookupLogicalSwitchTask",
    "NameableTask",
    "TaskMeta",
    "TaskSettings",
]
