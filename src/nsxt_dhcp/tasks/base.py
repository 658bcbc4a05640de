"""
Task interfaces.

A task converges one resource kind. Capabilities are separate protocols so a
task only implements what it supports:

EnsurableTask
Every task. Reads and writes state, calls the remote client.

NameableTask
Tasks that look an object up by a name taken from InfraSpec.

DeletableTask
Tasks that own their object and can delete it.

Lookup tasks only discover objects, they never create, update or delete.

Owned objects
Tasks that own their object share one state machine, converge_owned and
remove_owned below. The task supplies the resource specific hooks through the
OwnedResource protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from nsxt_dhcp.core.compare import FieldDiff
from nsxt_dhcp.core.errors import (
    CreatingError,
    DeletingError,
    DependencyMissingError,
    PayloadError,
    ReadingError,
    RemoteNotFound,
    TransportError,
    UnexpectedStatusError,
    UpdatingError,
)
from nsxt_dhcp.core.types import InfraSpec, InfraState, Reference
from nsxt_dhcp.execution.base import HTTP_CREATED, HTTP_NOT_FOUND, HTTP_OK, ApiResponse, NsxtClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskMeta:
    """
    Shared task metadata.

    label is the human readable task name used in logs and errors.
    """

    label: str


@dataclass(frozen=True)
class TaskSettings:
    """
    Settings shared by the DHCP tasks.

    description
    Description stamped on every created object.

    lease_time
    DHCP lease time in seconds.

    error_threshold and warning_threshold
    Pool usage percentages that raise alarms on the remote side.

    pool_start_offset
    Host offset of the first pool address within the worker subnet.

    correlation_scope
    Tag scope that links a logical switch to its segment policy path.
    """

    description: str = "created by nsxt-dhcp"
    lease_time: int = 7200
    error_threshold: int = 98
    warning_threshold: int = 70
    pool_start_offset: int = 10
    correlation_scope: str = "policyPath"


@runtime_checkable
class EnsurableTask(Protocol):
    meta: TaskMeta

    def reference(self, state: InfraState) -> Reference:
        """Return the reference this task maintains."""

    def ensure(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
        """Converge the resource and record its identifier in state."""


@runtime_checkable
class NameableTask(Protocol):
    def name(self, spec: InfraSpec) -> Optional[str]:
        """Return the name the task looks up, None when it has none."""


@runtime_checkable
class DeletableTask(Protocol):
    def ensure_deleted(self, client: NsxtClient, spec: InfraSpec, state: InfraState) -> bool:
        """Delete the resource. Return True only when a delete call removed it."""


class OwnedResource(Protocol):
    """
    Resource specific hooks for converge_owned and remove_owned.

    ref_field
    Name of the AdvancedDhcpState field holding the identifier.

    desired
    Build the desired object from spec and earlier references.
    Raise DependencyMissingError when an earlier reference is absent.
    """

    meta: TaskMeta
    ref_field: str

    def desired(self, spec: InfraSpec, state: InfraState) -> Any: ...

    def diff(self, current: Any, desired: Any) -> FieldDiff: ...

    def read(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse: ...

    def create(self, client: NsxtClient, state: InfraState, obj: Any) -> ApiResponse: ...

    def update(self, client: NsxtClient, state: InfraState, object_id: str, obj: Any) -> ApiResponse: ...

    def delete(self, client: NsxtClient, state: InfraState, object_id: str) -> ApiResponse: ...


def is_not_found(exc: TransportError) -> bool:
    return isinstance(exc, RemoteNotFound) or exc.status == HTTP_NOT_FOUND


def expect_status(operation: str, response: ApiResponse, expected: int) -> None:
    """Raise UnexpectedStatusError unless the response carries the expected status."""
    if response.status != expected:
        raise UnexpectedStatusError(operation, response.status, expected)


def require_reference(meta: TaskMeta, state: InfraState, name: str) -> str:
    """Return a reference set by an earlier task or raise DependencyMissingError."""
    value = state.advanced_dhcp.reference(name).id
    if value is None:
        raise DependencyMissingError(meta.label, name)
    return value


def _read_existing(resource: OwnedResource, client: NsxtClient, state: InfraState, object_id: str) -> Any:
    """Read the current object. Return None only when it no longer exists."""
    try:
        response = resource.read(client, state, object_id)
    except TransportError as exc:
        if is_not_found(exc):
            return None
        raise ReadingError(exc) from exc

    if response.status == HTTP_NOT_FOUND:
        return None
    expect_status("reading", response, HTTP_OK)
    if response.value is None:
        raise ReadingError(PayloadError("read returned no object"))
    return response.value


def converge_owned(resource: OwnedResource, client: NsxtClient, spec: InfraSpec, state: InfraState) -> None:
    """
    Create, update or leave alone an owned object.

    Steps
    1) no reference: create and store the new id
    2) reference set: read the object
       not found: forget the reference and create once
       found: update only when a field differs
    """
    dhcp = state.advanced_dhcp
    label = resource.meta.label
    desired = resource.desired(spec, state)
    object_id = dhcp.reference(resource.ref_field).id

    if object_id is not None:
        current = _read_existing(resource, client, state, object_id)
        if current is not None:
            diff = resource.diff(current, desired)
            if not diff:
                logger.debug("%s %s is up to date", label, object_id)
                return

            logger.info("updating %s %s, changed: %s", label, object_id, ", ".join(diff.changed))
            try:
                response = resource.update(client, state, object_id, desired)
            except TransportError as exc:
                raise UpdatingError(exc) from exc
            expect_status("updating", response, HTTP_OK)
            return

        logger.warning("%s %s no longer exists, recreating", label, object_id)
        dhcp.forget(resource.ref_field)

    try:
        response = resource.create(client, state, desired)
    except TransportError as exc:
        raise CreatingError(exc) from exc
    expect_status("creating", response, HTTP_CREATED)

    created = response.value
    if created is None or created.id is None:
        raise CreatingError(PayloadError("created object carries no id"))

    dhcp.assign(resource.ref_field, created.id)
    logger.info("created %s %s", label, created.id)


def remove_owned(resource: OwnedResource, client: NsxtClient, state: InfraState) -> bool:
    """
    Delete an owned object.

    Returns False without a call when the reference is absent.
    Not found counts as deleted by someone else: the reference is cleared and
    False is returned.
    """
    dhcp = state.advanced_dhcp
    label = resource.meta.label
    object_id = dhcp.reference(resource.ref_field).id
    if object_id is None:
        return False

    try:
        response = resource.delete(client, state, object_id)
    except TransportError as exc:
        if is_not_found(exc):
            logger.info("%s %s already gone", label, object_id)
            dhcp.forget(resource.ref_field)
            return False
        raise DeletingError(exc) from exc

    if response.status == HTTP_NOT_FOUND:
        logger.info("%s %s already gone", label, object_id)
        dhcp.forget(resource.ref_field)
        return False
    expect_status("deleting", response, HTTP_OK)

    dhcp.forget(resource.ref_field)
    logger.info("deleted %s %s", label, object_id)
    return True
