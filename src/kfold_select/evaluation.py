"""Cross-validation of a model configuration over precomputed fold pairs.

``cross_validate`` is the building block of both entry points: it trains
one model per fold on the complementary partitions, evaluates it on the
held-out partition and aggregates the k scores. ``SubsetEvaluator``
binds the fold pairs and options of a search so that feature subsets
can be evaluated one call at a time.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .config import CrossValidationResult, EvaluationMetric, ModelKind, ResourceKind
from .errors import ErrorCode, RemoteCallError, ValidationError
from .folds import FoldPair
from .options import project
from .resources import Platform, delete_all, safe_create, wait_all

logger = logging.getLogger(__name__)


def evaluation_name(fold_idx: int, dataset_name: str) -> str:
    return f"Evaluation tested with subset {fold_idx} of {dataset_name}"


def aggregate_scores(scores: Sequence[float]) -> Tuple[float, float, float]:
    """Mean, population standard deviation and mean minus deviation.

    Args:
        scores: Per-fold scores.

    Returns:
        Tuple of (phi, stdev, phi_stdev).
    """
    values = np.asarray(scores, dtype=float)
    phi = float(np.mean(values))
    stdev = float(np.sqrt(np.mean((values - phi) ** 2)))
    return phi, stdev, phi - stdev


def extract_score(
    evaluation: Dict[str, Any],
    metric: EvaluationMetric = EvaluationMetric.AVERAGE_PHI
) -> float:
    """Read the performance score from an evaluation document.

    Raises:
        RemoteCallError: the document has no such score.
    """
    score = ((evaluation.get('result') or {}).get('model') or {}).get(metric.value)
    if score is None:
        raise RemoteCallError(
            f"evaluation has no result.model.{metric.value}",
            resource_id=evaluation.get('resource')
        )
    return float(score)


def cross_validate(
    client: Platform,
    fold_pairs: Sequence[FoldPair],
    objective_field_name: str,
    dataset_name: str,
    model_options: Optional[Dict[str, Any]] = None,
    evaluation_options: Optional[Dict[str, Any]] = None,
    delete_intermediate: bool = True,
    model_kind: Optional[ModelKind] = None,
    metric: EvaluationMetric = EvaluationMetric.AVERAGE_PHI
) -> CrossValidationResult:
    """Train and evaluate one model per fold and aggregate the scores.

    Models are created for all folds before any is waited on; the same
    holds for evaluations. Evaluations are never deleted here, even when
    delete_intermediate is set: deleting them is up to the caller. If a
    creation or wait fails, the models and evaluations created so far are
    deleted before the error propagates (only with delete_intermediate).

    Args:
        client: Platform client.
        fold_pairs: (holdout, training partitions) per fold, at least two.
        objective_field_name: Name of the objective field.
        dataset_name: Origin dataset name, used to name evaluations.
        model_options: Superset map of model options.
        evaluation_options: Superset map of evaluation options.
        delete_intermediate: Delete the per-fold models once evaluated.
        model_kind: Explicitly requested model kind.
        metric: Evaluation score to aggregate.

    Returns:
        CrossValidationResult with the aggregate and the created ids.
    """
    if len(fold_pairs) < 2:
        raise ValidationError(
            ErrorCode.BELOW_MINIMUM,
            f"cross-validation needs at least 2 folds, got {len(fold_pairs)}"
        )

    projected = project(model_options, evaluation_options, model_kind)
    kind = projected.resource_kind.value

    model_ids: List[str] = []
    evaluation_ids: List[str] = []
    try:
        for _, training_ids in fold_pairs:
            model_ids.append(safe_create(client, kind, {
                'datasets': list(training_ids),
                'objective_field': objective_field_name,
                **projected.model_options,
            }))
        wait_all(client, model_ids)
        logger.debug(f"Trained {len(model_ids)} {kind} resources")

        for fold_idx, ((holdout_id, _), model_id) in enumerate(zip(fold_pairs, model_ids)):
            evaluation_ids.append(safe_create(client, ResourceKind.EVALUATION.value, {
                **projected.evaluation_options,
                'dataset': holdout_id,
                kind: model_id,
                'name': evaluation_name(fold_idx, dataset_name),
            }))
        wait_all(client, evaluation_ids)
    except RemoteCallError:
        if delete_intermediate:
            logger.warning(f"Cross-validation aborted, deleting {len(model_ids)} models "
                           f"and {len(evaluation_ids)} evaluations")
            delete_all(client, model_ids + evaluation_ids)
        raise

    if delete_intermediate:
        delete_all(client, model_ids)

    try:
        scores = [extract_score(client.fetch(eid), metric) for eid in evaluation_ids]
    except RemoteCallError:
        if delete_intermediate:
            delete_all(client, evaluation_ids)
        raise
    phi, stdev, phi_stdev = aggregate_scores(scores)

    return CrossValidationResult(
        phi=phi,
        stdev=stdev,
        phi_stdev=phi_stdev,
        scores=scores,
        model_ids=model_ids,
        evaluation_ids=evaluation_ids,
    )


class SubsetEvaluator:
    """Evaluates feature subsets by cross-validation over fixed folds.

    The fold pairs, objective and options are bound once; evaluate() only
    varies the input fields.

    Attributes:
        fold_pairs: Fold pairs shared by every evaluation.
        objective_field_name: Objective field name.
        dataset_name: Origin dataset name.
        model_options: Base model options (input_fields is overridden).
        evaluation_options: Evaluation options.
        model_kind: Explicitly requested model kind.
        metric: Evaluation score to aggregate.
        delete_resources: Delete models and evaluations once scored.
    """

    def __init__(
        self,
        client: Platform,
        fold_pairs: Sequence[FoldPair],
        objective_field_name: str,
        dataset_name: str,
        model_options: Optional[Dict[str, Any]] = None,
        evaluation_options: Optional[Dict[str, Any]] = None,
        model_kind: Optional[ModelKind] = None,
        metric: EvaluationMetric = EvaluationMetric.AVERAGE_PHI,
        delete_resources: bool = True
    ):
        self._client = client
        self.fold_pairs = list(fold_pairs)
        self.objective_field_name = objective_field_name
        self.dataset_name = dataset_name
        self.model_options = dict(model_options or {})
        self.evaluation_options = dict(evaluation_options or {})
        self.model_kind = model_kind
        self.metric = metric
        self.delete_resources = delete_resources

    def evaluate(self, field_ids: Iterable[str]) -> CrossValidationResult:
        """Cross-validate a model restricted to the given input fields."""
        options = dict(self.model_options)
        options['input_fields'] = list(field_ids)

        result = cross_validate(
            self._client,
            self.fold_pairs,
            self.objective_field_name,
            self.dataset_name,
            model_options=options,
            evaluation_options=self.evaluation_options,
            delete_intermediate=self.delete_resources,
            model_kind=self.model_kind,
            metric=self.metric,
        )

        if self.delete_resources:
            delete_all(self._client, result.evaluation_ids)

        return result
