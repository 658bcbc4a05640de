"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
RemoteNotFound on a read path clears the reference and recreates the object.
ReadingError or UnexpectedStatusError should be retried on the next pass.
LookupNotFoundError cannot be fixed by this engine and needs operator action.

retryable
Each error class states whether re-running the same pass with the same spec
can succeed. TaskFailed delegates to the error it wraps.
"""

from __future__ import annotations


class NsxtDhcpError(Exception):
    """Base class for all nsxt_dhcp exceptions."""

    retryable = False


class TransportError(NsxtDhcpError):
    """
    Raised by remote API clients when a call fails.

    status is the HTTP status code when the server answered, None when the
    request never got a response.
    """

    retryable = True

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"


class RemoteNotFound(TransportError):
    """Raised when the remote object does not exist (HTTP 404)."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message, status=404)


class PayloadError(TransportError):
    """Raised when a response body cannot be decoded into a resource."""


class OperationError(NsxtDhcpError):
    """
    A transport failure tagged with the operation that caused it.

    The original transport error is kept as cause and chained by callers with
    raise ... from.
    """

    operation = "operation"
    retryable = True

    def __init__(self, cause: BaseException, operation: str | None = None) -> None:
        if operation is not None:
            self.operation = operation
        super().__init__(f"{self.operation} failed: {cause}")
        self.cause = cause


class ReadingError(OperationError):
    operation = "reading"


class CreatingError(OperationError):
    operation = "creating"


class UpdatingError(OperationError):
    operation = "updating"


class DeletingError(OperationError):
    operation = "deleting"


class UnexpectedStatusError(NsxtDhcpError):
    """Raised when the transport succeeded but the status code is not the expected one."""

    retryable = True

    def __init__(self, operation: str, status: int, expected: int) -> None:
        super().__init__(
            f"{operation} failed with unexpected HTTP status code {status} (expected {expected})"
        )
        self.operation = operation
        self.status = status
        self.expected = expected


class AddressComputationError(NsxtDhcpError):
    """Raised when an address cannot be derived from the worker subnet."""

    def __init__(self, what: str, cidr: str, detail: str) -> None:
        super().__init__(f"{what}: cannot derive from {cidr!r}: {detail}")
        self.what = what
        self.cidr = cidr
        self.detail = detail


class LookupNotFoundError(NsxtDhcpError):
    """Raised when a lookup task finds no matching remote object."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class DependencyMissingError(NsxtDhcpError):
    """Raised when a task runs before the reference it depends on is set."""

    def __init__(self, task: str, reference: str) -> None:
        super().__init__(f"{task}: required reference {reference} is not set")
        self.task = task
        self.reference = reference


class TaskFailed(NsxtDhcpError):
    """Raised by the ensurer with the label of the task that failed."""

    def __init__(self, label: str, cause: NsxtDhcpError) -> None:
        super().__init__(f"{label}: {cause}")
        self.label = label
        self.cause = cause

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.cause.retryable
