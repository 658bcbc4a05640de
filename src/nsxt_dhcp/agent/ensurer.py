"""
Ensurer.

The ensurer runs the fixed task list of the advanced DHCP topology.

Order
edge cluster lookup, DHCP profile, DHCP server, logical switch lookup,
DHCP port, DHCP IP pool.
Each task consumes ids recorded by the tasks before it. Deletion runs the
same list backwards so nothing is deleted while something still uses it.

Failure handling
The first failing task stops the pass and is raised as TaskFailed.
State advanced by earlier tasks is kept. There is no rollback, the caller
persists state and runs the pass again later.

Scheduling, retries and persistence belong to the caller. Exactly one pass
per infrastructure object runs at a time.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from nsxt_dhcp.core.errors import NsxtDhcpError, TaskFailed
from nsxt_dhcp.core.types import InfraSpec, InfraState, Reference
from nsxt_dhcp.execution.base import NsxtClient
from nsxt_dhcp.tasks import (
    DeletableTask,
    DhcpIpPoolTask,
    DhcpPortTask,
    DhcpProfileTask,
    DhcpServerTask,
    EnsurableTask,
    LookupEdgeClusterTask,
    LookupLogicalSwitchTask,
    NameableTask,
    TaskSettings,
)

logger = logging.getLogger(__name__)


def default_tasks(settings: TaskSettings | None = None) -> List[EnsurableTask]:
    """Return the task list in creation order."""
    settings = settings or TaskSettings()
    return [
        LookupEdgeClusterTask(),
        DhcpProfileTask(settings),
        DhcpServerTask(settings),
        LookupLogicalSwitchTask(settings),
        DhcpPortTask(settings),
        DhcpIpPoolTask(settings),
    ]


class Ensurer:
    """
    Runs tasks against one remote API client.

    client
    Remote API client shared by all tasks.

    settings
    Task settings used when building the default task list.

    tasks
    Optional task list in creation order. Defaults to default_tasks.
    """

    def __init__(
        self,
        client: NsxtClient,
        settings: TaskSettings | None = None,
        tasks: Optional[Sequence[EnsurableTask]] = None,
    ) -> None:
        self._client = client
        self._tasks = list(tasks) if tasks is not None else default_tasks(settings)

    @property
    def tasks(self) -> List[EnsurableTask]:
        return list(self._tasks)

    def ensure_all(self, spec: InfraSpec, state: InfraState) -> None:
        """
        Converge every resource in creation order.

        Raises TaskFailed for the first task that fails.
        """
        for task in self._tasks:
            label = task.meta.label
            logger.debug("ensuring %s%s", label, self._describe_name(task, spec))
            try:
                task.ensure(self._client, spec, state)
            except NsxtDhcpError as exc:
                logger.info("%s failed: %s", label, exc)
                raise TaskFailed(label, exc) from exc

        logger.info("advanced DHCP of %s is ready", spec.full_cluster_name())

    def ensure_all_deleted(self, spec: InfraSpec, state: InfraState) -> bool:
        """
        Delete every owned resource in reverse creation order.

        Lookup tasks are skipped. Returns True when at least one object was
        deleted by this pass.

        Raises TaskFailed for the first task that fails.
        """
        deleted = False

        for task in reversed(self._tasks):
            if not isinstance(task, DeletableTask):
                continue

            label = task.meta.label
            logger.debug("deleting %s", label)
            try:
                if task.ensure_deleted(self._client, spec, state):
                    deleted = True
            except NsxtDhcpError as exc:
                logger.info("deleting %s failed: %s", label, exc)
                raise TaskFailed(label, exc) from exc

        if deleted:
            logger.info("advanced DHCP of %s deleted", spec.full_cluster_name())
        return deleted

    def references(self, state: InfraState) -> Dict[str, Reference]:
        """Return task label to reference, in creation order."""
        return {task.meta.label: task.reference(state) for task in self._tasks}

    @staticmethod
    def _describe_name(task: EnsurableTask, spec: InfraSpec) -> str:
        if isinstance(task, NameableTask):
            name = task.name(spec)
            if name is not None:
                return f" {name!r}"
        return ""
