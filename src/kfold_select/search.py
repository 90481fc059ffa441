"""Top-level cross-validation and feature selection runs.

Both entry points take an explicit configuration record and a platform
client. They validate every input before creating remote resources,
own the fold partitions they create, and delete them on the way out
(best-effort, also when the run aborts).
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .algorithms import best_first_selection, compute_initial_ranking
from .config import (
    CrossValidationConfig, CrossValidationReport, ResourceKind, SelectionConfig,
    SelectionResult
)
from .evaluation import SubsetEvaluator, cross_validate
from .folds import create_k_folds, pair_k_folds
from .options import build_model_options
from .progress import NullProgressTracker, ProgressTracker
from .resources import Platform, delete_all, safe_create
from .validation import (
    resolve_objective, validate_dataset, validate_preselected,
    validate_resource_id
)

logger = logging.getLogger(__name__)


def load_dataset(
    client: Platform,
    dataset_id: str,
    k: int,
    objective_id: Optional[str] = None
) -> Tuple[Dict[str, Any], str, str]:
    """Fetch a dataset and run the degenerate-input checks.

    Returns:
        Tuple of (dataset document, objective id, objective name).
    """
    validate_resource_id(dataset_id, 'dataset')
    dataset = client.wait(dataset_id)
    validate_dataset(dataset, k)
    objective_id, objective_name = resolve_objective(dataset, objective_id)
    return dataset, objective_id, objective_name


def averaged_evaluation_name(dataset_name: str, k: int) -> str:
    return f"Cross-validation of {dataset_name} ({k} folds)"


def run_cross_validation(
    config: CrossValidationConfig,
    client: Platform,
    progress: Optional[ProgressTracker] = None
) -> CrossValidationReport:
    """Run one k-fold cross-validation of a model configuration.

    Args:
        config: Run configuration.
        client: Platform client.
        progress: Optional progress tracker.

    Returns:
        CrossValidationReport with the aggregate, the per-fold evaluations
        and the averaged evaluation (when requested).
    """
    progress = progress or NullProgressTracker()
    dataset, _, objective_name = load_dataset(
        client, config.dataset_id, config.k_folds, config.objective_id
    )
    dataset_name = dataset.get('name', config.dataset_id)

    progress.start_phase("fold_partitioning", total=config.k_folds)
    partition_ids: List[str] = []
    try:
        partition_ids = create_k_folds(client, config.dataset_id, config.k_folds)
        progress.update(completed=len(partition_ids))
        progress.end_phase()

        progress.start_phase("cross_validation", total=config.k_folds)
        result = cross_validate(
            client,
            pair_k_folds(partition_ids),
            objective_name,
            dataset_name,
            model_options=build_model_options(config),
            evaluation_options=config.evaluation_options,
            delete_intermediate=config.delete_resources,
            model_kind=config.model_kind,
            metric=config.metric,
        )
        progress.update(completed=config.k_folds, score=result.phi_stdev)
        progress.end_phase()
        logger.info(f"{dataset_name}: phi={result.phi:.4f} stdev={result.stdev:.4f} "
                    f"phi-stdev={result.phi_stdev:.4f}")

        averaged_id = None
        if config.average_evaluations:
            averaged_id = safe_create(client, ResourceKind.EVALUATION.value, {
                'evaluations': list(result.evaluation_ids),
                'name': averaged_evaluation_name(dataset_name, config.k_folds),
            })
            client.wait(averaged_id)
    finally:
        if config.delete_resources and partition_ids:
            delete_all(client, partition_ids)
        progress.finish()

    return CrossValidationReport(
        result=result,
        evaluation_ids=list(result.evaluation_ids),
        averaged_evaluation_id=averaged_id,
    )


def run_best_first_selection(
    config: SelectionConfig,
    client: Platform,
    progress: Optional[ProgressTracker] = None
) -> SelectionResult:
    """Select features by best-first search over repeated cross-validations.

    The k fold partitions are created once, shared by every candidate
    cross-validation and deleted once at the end.

    Args:
        config: Search configuration.
        client: Platform client.
        progress: Optional progress tracker.

    Returns:
        SelectionResult with the selected field names and iteration records.
    """
    dataset, objective_id, objective_name = load_dataset(
        client, config.dataset_id, config.k_folds, config.objective_id
    )
    dataset_name = dataset.get('name', config.dataset_id)
    fields = dataset.get('fields') or {}
    field_names = {fid: info.get('name', fid) for fid, info in fields.items()}

    pre_selected = validate_preselected(dataset, config.pre_selected_fields, objective_id)
    ranking = compute_initial_ranking(
        client, dataset, objective_id, seed=config.ranking_seed,
        delete_ensemble=config.delete_resources
    )

    partition_ids: List[str] = []
    try:
        partition_ids = create_k_folds(client, config.dataset_id, config.k_folds)
        evaluator = SubsetEvaluator(
            client,
            pair_k_folds(partition_ids),
            objective_name,
            dataset_name,
            model_options=config.model_options,
            evaluation_options=config.evaluation_options,
            model_kind=config.model_kind,
            metric=config.metric,
            delete_resources=config.delete_resources,
        )
        state, stop_reason = best_first_selection(
            evaluator,
            ranking,
            config.max_features,
            pre_selected=pre_selected,
            early_stop_performance=config.early_stop_performance,
            max_low_perf_iterations=config.max_low_perf_iterations,
            field_names=field_names,
            n_jobs=config.n_jobs,
            progress=progress,
        )
    finally:
        if partition_ids:
            delete_all(client, partition_ids)
        if progress:
            progress.finish()

    selected_ids = state.final_selection(stop_reason)

    output_dataset_id = None
    if config.create_output_dataset:
        output_dataset_id = safe_create(client, ResourceKind.DATASET.value, {
            'origin_dataset': config.dataset_id,
            'input_fields': selected_ids + [objective_id],
            'name': f"{dataset_name} - selected features",
        })
        client.wait(output_dataset_id)

    return SelectionResult(
        selected_fields=[field_names.get(fid, fid) for fid in selected_ids],
        selected_field_ids=selected_ids,
        iterations_info=list(state.queue),
        stop_reason=stop_reason,
        output_dataset_id=output_dataset_id,
    )
