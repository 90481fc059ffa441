"""Projection of flat option maps onto per-kind allow-lists.

Callers may pass superset option maps; only the keys the target
resource kind accepts are forwarded to the platform, the rest are
dropped.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

from .config import CrossValidationConfig, ModelKind, ResourceKind

logger = logging.getLogger(__name__)

_SAMPLING_OPTIONS = frozenset({
    'sample_rate', 'replacement', 'seed', 'out_of_bag', 'range',
})

_FIELD_OPTIONS = frozenset({
    'input_fields', 'excluded_fields', 'weight_field', 'objective_weights',
})

_TREE_OPTIONS = frozenset({
    'node_threshold', 'missing_splits', 'split_candidates', 'randomize',
    'random_candidates', 'balance_objective', 'depth_threshold',
})

_COMMON_OPTIONS = frozenset({'name', 'description', 'tags', 'project'})

MODEL_OPTIONS = (
    _COMMON_OPTIONS | _SAMPLING_OPTIONS | _FIELD_OPTIONS | _TREE_OPTIONS
    | frozenset({'pruning', 'support_threshold'})
)

ENSEMBLE_OPTIONS = (
    _COMMON_OPTIONS | _SAMPLING_OPTIONS | _FIELD_OPTIONS | _TREE_OPTIONS
    | frozenset({'number_of_models', 'ensemble_sample', 'pruning', 'support_threshold'})
)

BOOSTED_ENSEMBLE_OPTIONS = (
    _COMMON_OPTIONS | _SAMPLING_OPTIONS | _FIELD_OPTIONS | _TREE_OPTIONS
    | frozenset({'boosting', 'ensemble_sample'})
)

LOGISTIC_REGRESSION_OPTIONS = (
    _COMMON_OPTIONS | _SAMPLING_OPTIONS | _FIELD_OPTIONS
    | frozenset({
        'bias', 'c', 'eps', 'balance_fields', 'field_codings',
        'missing_numerics', 'normalize', 'regularization',
        'default_numeric_value',
    })
)

EVALUATION_OPTIONS = (
    _COMMON_OPTIONS | _SAMPLING_OPTIONS
    | frozenset({
        'missing_strategy', 'combiner', 'operating_kind', 'operating_point',
        'threshold',
    })
)

OPTION_ALLOW_LISTS: Dict[ModelKind, FrozenSet[str]] = {
    ModelKind.MODEL: MODEL_OPTIONS,
    ModelKind.ENSEMBLE: ENSEMBLE_OPTIONS,
    ModelKind.BOOSTED_ENSEMBLE: BOOSTED_ENSEMBLE_OPTIONS,
    ModelKind.LOGISTIC_REGRESSION: LOGISTIC_REGRESSION_OPTIONS,
}

RESOURCE_KINDS: Dict[ModelKind, ResourceKind] = {
    ModelKind.MODEL: ResourceKind.MODEL,
    ModelKind.ENSEMBLE: ResourceKind.ENSEMBLE,
    ModelKind.BOOSTED_ENSEMBLE: ResourceKind.ENSEMBLE,
    ModelKind.LOGISTIC_REGRESSION: ResourceKind.LOGISTIC_REGRESSION,
}


@dataclass
class ProjectedOptions:
    """Options ready to be forwarded to the platform.

    Attributes:
        resource_kind: Remote kind to create per fold.
        model_kind: Model kind the options were projected for.
        model_options: Options for the model creation request.
        evaluation_options: Options for the evaluation creation request.
    """
    resource_kind: ResourceKind
    model_kind: ModelKind
    model_options: Dict[str, Any]
    evaluation_options: Dict[str, Any]


def infer_model_kind(
    model_options: Dict[str, Any],
    model_kind: Optional[ModelKind] = None
) -> ModelKind:
    """Decide the model kind from an explicit request and option shape.

    A logistic regression request is always honoured. Otherwise a non-empty
    ``boosting`` map selects a boosted ensemble and ``number_of_models > 1``
    an ensemble; an explicit ensemble request without either keeps the
    ensemble kind.
    """
    if model_kind == ModelKind.LOGISTIC_REGRESSION:
        return model_kind
    if model_options.get('boosting'):
        return ModelKind.BOOSTED_ENSEMBLE
    if (model_options.get('number_of_models') or 1) > 1:
        return ModelKind.ENSEMBLE
    if model_kind in (ModelKind.ENSEMBLE, ModelKind.BOOSTED_ENSEMBLE):
        return ModelKind.ENSEMBLE
    return ModelKind.MODEL


def _project(options: Dict[str, Any], allowed: FrozenSet[str], target: str) -> Dict[str, Any]:
    dropped = sorted(k for k in options if k not in allowed)
    if dropped:
        logger.debug(f"Dropping options not accepted by {target}: {dropped}")
    return {k: v for k, v in options.items() if k in allowed and v is not None}


def project(
    model_options: Optional[Dict[str, Any]],
    evaluation_options: Optional[Dict[str, Any]] = None,
    model_kind: Optional[ModelKind] = None
) -> ProjectedOptions:
    """Project flat option maps onto the allow-lists of the target kind.

    Args:
        model_options: Superset map of model options.
        evaluation_options: Superset map of evaluation options.
        model_kind: Explicitly requested kind, if any.

    Returns:
        ProjectedOptions with the decided resource kind.
    """
    model_options = dict(model_options or {})
    kind = infer_model_kind(model_options, model_kind)

    return ProjectedOptions(
        resource_kind=RESOURCE_KINDS[kind],
        model_kind=kind,
        model_options=_project(model_options, OPTION_ALLOW_LISTS[kind], kind.value),
        evaluation_options=_project(
            dict(evaluation_options or {}), EVALUATION_OPTIONS, 'evaluation'
        ),
    )


def build_model_options(config: CrossValidationConfig) -> Dict[str, Any]:
    """Merge the option maps and scalar inputs of a run into one flat map.

    Later sources win: model options, then ensemble options, then the
    boosting map, then scalar inputs that were explicitly set.
    """
    options: Dict[str, Any] = {}
    options.update(config.model_options)
    options.update(config.ensemble_options)
    if config.boosting:
        options['boosting'] = dict(config.boosting)

    scalars = {
        'weight_field': config.weight_field,
        'objective_weights': config.objective_weights,
        'node_threshold': config.node_threshold,
        'sample_rate': config.sample_rate,
        'replacement': config.replacement,
        'randomize': config.randomize,
        'seed': config.seed,
    }
    options.update({k: v for k, v in scalars.items() if v is not None})
    return options
