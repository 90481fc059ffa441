"""Input validation for cross-validation and feature selection runs.

Every check here runs before any remote resource is created. Failures
raise ValidationError or DegenerateInputError with a stable code.
"""

import numbers
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import DegenerateInputError, ErrorCode, ValidationError

RESOURCE_KINDS = (
    'dataset', 'model', 'ensemble', 'logisticregression', 'evaluation'
)

RESOURCE_ID_RE = re.compile(
    r'^(?P<kind>' + '|'.join(RESOURCE_KINDS) + r')/(?P<oid>[a-f0-9]{24})$'
)


def resource_kind(resource_id: str) -> str:
    """Return the kind prefix of a resource id (e.g. 'dataset')."""
    match = RESOURCE_ID_RE.match(resource_id) if isinstance(resource_id, str) else None
    if match is None:
        raise ValidationError(
            ErrorCode.NOT_A_RESOURCE_ID,
            f"{resource_id!r} is not a resource id"
        )
    return match.group('kind')


def validate_resource_id(value: Any, expected_kind: Optional[str] = None) -> str:
    """Check that value is a resource id, optionally of a given kind.

    Args:
        value: Candidate resource id.
        expected_kind: Required kind prefix, or None to accept any kind.

    Returns:
        The validated id.

    Raises:
        ValidationError: not-a-resource-id or wrong-resource-type.
    """
    kind = resource_kind(value)
    if expected_kind is not None and kind != expected_kind:
        raise ValidationError(
            ErrorCode.WRONG_RESOURCE_TYPE,
            f"expected a {expected_kind} id, got {value!r}"
        )
    return value


def validate_integer(
    value: Any,
    name: str,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None
) -> int:
    """Check that value is integral and within [minimum, maximum].

    Integral floats such as 5.0 are accepted and converted; booleans are
    rejected.

    Raises:
        ValidationError: not-an-integer, below-minimum or above-maximum.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(
            ErrorCode.NOT_AN_INTEGER, f"{name} must be an integer, got {value!r}"
        )
    if not isinstance(value, numbers.Integral):
        if value != value or value in (float('inf'), float('-inf')) or int(value) != value:
            raise ValidationError(
                ErrorCode.NOT_AN_INTEGER, f"{name} must be an integer, got {value!r}"
            )
    value = int(value)

    if minimum is not None and value < minimum:
        raise ValidationError(
            ErrorCode.BELOW_MINIMUM, f"{name} must be >= {minimum}, got {value}"
        )
    if maximum is not None and value > maximum:
        raise ValidationError(
            ErrorCode.ABOVE_MAXIMUM, f"{name} must be <= {maximum}, got {value}"
        )
    return value


def validate_dataset(dataset: Dict[str, Any], k: int) -> int:
    """Reject datasets that cannot be split into k non-empty folds.

    Args:
        dataset: Dataset document.
        k: Requested number of folds.

    Returns:
        Number of rows in the dataset.
    """
    rows = int(dataset.get('rows') or 0)
    if rows <= 0:
        raise DegenerateInputError(
            ErrorCode.EMPTY_DATASET,
            f"dataset {dataset.get('resource', '')} has no rows"
        )
    if k > rows:
        raise DegenerateInputError(
            ErrorCode.TOO_MANY_FOLDS,
            f"cannot build {k} folds from {rows} rows"
        )
    return rows


def resolve_objective(
    dataset: Dict[str, Any],
    objective_id: Optional[str] = None
) -> Tuple[str, str]:
    """Resolve the objective field of a dataset.

    An empty objective id falls back to the dataset's default objective.

    Returns:
        Tuple of (field id, field name).

    Raises:
        ValidationError: objective-field-not-selectable.
        DegenerateInputError: objective-not-categorical.
    """
    fields = dataset.get('fields') or {}

    if not objective_id:
        objective_id = (dataset.get('objective_field') or {}).get('id')

    field = fields.get(objective_id) if objective_id else None
    if field is None or not field.get('preferred', True):
        raise ValidationError(
            ErrorCode.OBJECTIVE_FIELD_NOT_SELECTABLE,
            f"field {objective_id!r} cannot be used as objective"
        )

    if field.get('optype') != 'categorical':
        raise DegenerateInputError(
            ErrorCode.OBJECTIVE_NOT_CATEGORICAL,
            f"objective field {field.get('name', objective_id)!r} is "
            f"{field.get('optype')}, a categorical field is required"
        )

    return objective_id, field.get('name', objective_id)


def validate_preselected(
    dataset: Dict[str, Any],
    field_ids: Iterable[str],
    objective_id: str
) -> List[str]:
    """Check pre-selected feature ids against the dataset and objective."""
    fields = dataset.get('fields') or {}
    result = []
    for field_id in field_ids:
        if field_id == objective_id:
            raise ValidationError(
                ErrorCode.OBJECTIVE_FIELD_NOT_SELECTABLE,
                f"objective field {field_id!r} cannot be pre-selected"
            )
        if field_id not in fields:
            raise ValidationError(
                ErrorCode.UNKNOWN_FIELD,
                f"field {field_id!r} is not in the dataset"
            )
        if field_id not in result:
            result.append(field_id)
    return result
