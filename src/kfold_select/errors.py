"""Exception types raised by the cross-validation and selection flows.

Input problems (bad ids, out-of-range integers, unusable datasets) are
reported before any remote resource is created and always carry a
stable error code. Remote failures carry the HTTP status and the
platform's message.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Stable codes attached to input errors."""
    # Validation
    NOT_A_RESOURCE_ID = "not-a-resource-id"
    WRONG_RESOURCE_TYPE = "wrong-resource-type"
    NOT_AN_INTEGER = "not-an-integer"
    BELOW_MINIMUM = "below-minimum"
    ABOVE_MAXIMUM = "above-maximum"
    OBJECTIVE_FIELD_NOT_SELECTABLE = "objective-field-not-selectable"
    UNKNOWN_FIELD = "unknown-field"
    # Degenerate input
    EMPTY_DATASET = "empty-dataset"
    TOO_MANY_FOLDS = "too-many-folds"
    OBJECTIVE_NOT_CATEGORICAL = "objective-not-categorical"


class KFoldSelectError(Exception):
    """Base class for all errors raised by this package."""


class InputError(KFoldSelectError, ValueError):
    """An input was rejected before any remote call was made.

    Attributes:
        code: ErrorCode identifying the failed check.
        message: Human readable description.
    """

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code.value}: {message}")


class ValidationError(InputError):
    """Malformed or out-of-range input value."""


class DegenerateInputError(InputError):
    """Well-formed input that cannot produce a meaningful result."""


class RemoteCallError(KFoldSelectError):
    """A call to the modeling platform failed.

    Attributes:
        message: Error message (platform message when available).
        status_code: HTTP status code, or None for transport errors.
        resource_id: Resource the call was about, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        resource_id: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.resource_id = resource_id
        super().__init__(message)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self.message!r}, "
                f"status_code={self.status_code}, resource_id={self.resource_id!r})")


class ResourceFailedError(RemoteCallError):
    """A resource reached a faulty terminal state while being waited on."""


class WaitTimeoutError(RemoteCallError):
    """A resource did not reach a terminal state within the allowed time."""
