"""Lifecycle helpers around remote resource creation and deletion.

Creation is retried exactly once; deletion is best-effort and never
raises; ``wait_all`` is the fan-in point after a batch of creations.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .errors import RemoteCallError

logger = logging.getLogger(__name__)


class Platform(Protocol):
    """Operations consumed from the modeling platform."""

    def create(self, kind: str, args: Dict[str, Any]) -> str: ...

    def fetch(self, resource_id: str) -> Dict[str, Any]: ...

    def delete(self, resource_id: str) -> None: ...

    def wait(self, resource_id: str) -> Dict[str, Any]: ...


@dataclass
class CreateResult:
    """Outcome of one creation attempt.

    Attributes:
        resource_id: Id of the created resource, None on failure.
        error: The failure, None on success.
    """
    resource_id: Optional[str] = None
    error: Optional[RemoteCallError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.resource_id is not None

    def unwrap(self) -> str:
        """Return the resource id or raise the carried error."""
        if self.error is not None:
            raise self.error
        if self.resource_id is None:
            raise RemoteCallError("creation returned no resource id")
        return self.resource_id


def try_create(client: Platform, kind: str, args: Dict[str, Any]) -> CreateResult:
    """Attempt one creation, capturing platform failures in the result."""
    try:
        return CreateResult(resource_id=client.create(kind, args))
    except RemoteCallError as e:
        return CreateResult(error=e)


def safe_create(client: Platform, kind: str, args: Dict[str, Any]) -> str:
    """Create a resource, retrying once with identical arguments.

    Raises:
        RemoteCallError: the second attempt failed too.
    """
    result = try_create(client, kind, args)
    if not result.ok:
        logger.warning(f"Creating {kind} failed ({result.error}), retrying once")
        result = try_create(client, kind, args)
    return result.unwrap()


def safe_delete(client: Platform, resource_id: str) -> bool:
    """Delete a resource, logging and suppressing any platform failure.

    Returns:
        True if the platform acknowledged the deletion.
    """
    try:
        client.delete(resource_id)
    except RemoteCallError as e:
        logger.warning(f"Could not delete {resource_id}: {e}")
        return False
    return True


def delete_all(client: Platform, resource_ids: Iterable[str]) -> int:
    """Best-effort deletion of several resources.

    Returns:
        Number of resources actually deleted.
    """
    return sum(1 for resource_id in resource_ids if safe_delete(client, resource_id))


def wait_all(client: Platform, resource_ids: Iterable[str]) -> List[str]:
    """Block until every resource is finished, preserving input order.

    Raises:
        RemoteCallError: a resource failed or could not be polled.
    """
    resource_ids = list(resource_ids)
    for resource_id in resource_ids:
        client.wait(resource_id)
    return resource_ids
