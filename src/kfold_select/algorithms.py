"""Feature ranking and best-first feature selection.

This module implements:
- Initial feature ranking from a randomized forest's importances
- The best-first search state machine, which grows a feature subset one
  feature per iteration and stops on target size, exhausted candidates
  or a streak of iterations that fail the improvement threshold
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from joblib import Parallel, delayed

from .config import CrossValidationResult, FeatureRanking, IterationInfo, ResourceKind
from .evaluation import SubsetEvaluator
from .progress import ProgressTracker
from .resources import Platform, safe_create, safe_delete

logger = logging.getLogger(__name__)

STOP_LOW_PERFORMANCE = "max_low_perf_iterations"
STOP_MAX_FEATURES = "max_features"
STOP_NO_CANDIDATES = "no_candidates"

RANKING_NUMBER_OF_MODELS = 10


def selectable_fields(dataset: Dict[str, Any], objective_id: str) -> List[str]:
    """Preferred, non-objective field ids in dataset order."""
    return [
        field_id for field_id, info in (dataset.get('fields') or {}).items()
        if field_id != objective_id and info.get('preferred', True)
    ]


def compute_initial_ranking(
    client: Platform,
    dataset: Dict[str, Any],
    objective_id: str,
    seed: Optional[str] = None,
    number_of_models: int = RANKING_NUMBER_OF_MODELS,
    delete_ensemble: bool = True
) -> FeatureRanking:
    """Rank candidate features by randomized-forest importance.

    Trains one random decision forest on all candidate fields and sorts
    them by importance, descending. Fields the ensemble reports no
    importance for score 0; ties keep dataset field order.

    Args:
        client: Platform client.
        dataset: Dataset document.
        objective_id: Objective field id.
        seed: Optional seed for reproducible forests.
        number_of_models: Trees in the forest.
        delete_ensemble: Delete the forest once its importances are read.

    Returns:
        FeatureRanking with field ids sorted by importance.
    """
    candidates = selectable_fields(dataset, objective_id)

    args = {
        'dataset': dataset['resource'],
        'objective_field': objective_id,
        'input_fields': candidates,
        'randomize': True,
        'number_of_models': number_of_models,
    }
    if seed is not None:
        args['seed'] = seed

    ensemble_id = safe_create(client, ResourceKind.ENSEMBLE.value, args)
    ensemble = client.wait(ensemble_id)
    importance = ensemble.get('importance') or {}

    if delete_ensemble:
        safe_delete(client, ensemble_id)

    scores = {field_id: float(importance.get(field_id, 0.0)) for field_id in candidates}
    ranked = sorted(candidates, key=lambda f: scores[f], reverse=True)
    logger.info(f"Ranked {len(ranked)} candidate features with {ensemble_id}")

    return FeatureRanking(field_ids=ranked, importance_scores=scores)


def relative_improvement(winner_score: float, reference_score: float) -> float:
    """Percent change of winner_score relative to reference_score.

    Computed as (winner / reference) * 100 - 100 for any non-zero reference,
    so with a negative reference a score closer to zero gives a negative
    value. A zero reference yields +/-inf by the winner's sign, or 0 when
    both scores are equal.
    """
    if reference_score == 0:
        if winner_score == reference_score:
            return 0.0
        return math.copysign(math.inf, winner_score)
    return winner_score / reference_score * 100 - 100


@dataclass
class SelectionState:
    """Mutable state of the best-first search.

    Attributes:
        selected: Chosen field ids, most recent first.
        potentials: Remaining candidate field ids, by prior importance.
        queue: Winning iteration records, most recent first.
        bad_count: Consecutive iterations below the improvement threshold.
    """
    selected: List[str]
    potentials: List[str]
    queue: List[IterationInfo] = field(default_factory=list)
    bad_count: int = 0

    def stop_reason(self, max_features: int, max_bad: int) -> Optional[str]:
        """Why the search must stop now, or None to keep going."""
        if self.bad_count == max_bad:
            return STOP_LOW_PERFORMANCE
        if len(self.selected) >= max_features:
            return STOP_MAX_FEATURES
        if not self.potentials:
            return STOP_NO_CANDIDATES
        return None

    def reference_score(self) -> Optional[float]:
        """Score of the last good iteration, None before the first one."""
        if not self.queue:
            return None
        return self.queue[self.bad_count].phi_stdev

    def final_selection(self, stop_reason: str) -> List[str]:
        """Selected ids to report, without the losing streak when it stopped the search."""
        if stop_reason == STOP_LOW_PERFORMANCE:
            return self.selected[self.bad_count:]
        return list(self.selected)


def pick_winner(results: Sequence[CrossValidationResult]) -> int:
    """Index of the best phi-stdev; the first one wins ties."""
    best_idx = 0
    for idx, result in enumerate(results):
        if result.phi_stdev > results[best_idx].phi_stdev:
            best_idx = idx
    return best_idx


def _evaluate_candidates(
    evaluator: SubsetEvaluator,
    candidates: List[List[str]],
    n_jobs: int,
    progress: Optional[ProgressTracker]
) -> List[CrossValidationResult]:
    if n_jobs != 1 and len(candidates) > 1:
        results = Parallel(n_jobs=n_jobs, backend='threading', verbose=0)(
            delayed(evaluator.evaluate)(candidate) for candidate in candidates
        )
        if progress:
            progress.update(
                completed=len(results),
                score=max(r.phi_stdev for r in results)
            )
        return results

    results = []
    for candidate in candidates:
        start_time = time.time()
        result = evaluator.evaluate(candidate)
        results.append(result)
        if progress:
            progress.update(
                completed=len(results),
                score=result.phi_stdev,
                unit_time=time.time() - start_time
            )
    return results


def best_first_selection(
    evaluator: SubsetEvaluator,
    ranking: FeatureRanking,
    max_features: int,
    pre_selected: Sequence[str] = (),
    early_stop_performance: float = 1.0,
    max_low_perf_iterations: int = 4,
    field_names: Optional[Dict[str, str]] = None,
    n_jobs: int = 1,
    progress: Optional[ProgressTracker] = None
) -> Tuple[SelectionState, str]:
    """Greedy best-first feature selection.

    Each iteration cross-validates one candidate subset per remaining
    feature (that feature plus everything selected so far) and keeps the
    candidate with the highest phi-stdev. An iteration is bad when its
    winner improves on the last good iteration by less than
    early_stop_performance percent; max_low_perf_iterations bad
    iterations in a row stop the search.

    Args:
        evaluator: SubsetEvaluator bound to the search's folds.
        ranking: Candidate features by prior importance.
        max_features: Stop once this many features are selected.
        pre_selected: Field ids selected before the search starts.
        early_stop_performance: Minimum percent improvement of a good iteration.
        max_low_perf_iterations: Bad iterations in a row that stop the search.
        field_names: Field id -> name, used in iteration records.
        n_jobs: Parallel candidate cross-validations (1 = sequential).
        progress: Optional progress tracker.

    Returns:
        Tuple of (final state, stop reason).
    """
    field_names = field_names or {}
    selected = list(pre_selected)
    state = SelectionState(
        selected=selected,
        potentials=[f for f in ranking.field_ids if f not in selected],
    )

    iteration = 0
    while True:
        reason = state.stop_reason(max_features, max_low_perf_iterations)
        if reason is not None:
            break

        iteration += 1
        candidates = [[feature] + state.selected for feature in state.potentials]
        if progress:
            progress.start_phase(f"iteration_{iteration}", total=len(candidates))

        results = _evaluate_candidates(evaluator, candidates, n_jobs, progress)
        winner_idx = pick_winner(results)
        winner = results[winner_idx]
        feature = state.potentials[winner_idx]

        reference = state.reference_score()
        if reference is not None:
            improvement = relative_improvement(winner.phi_stdev, reference)
            if improvement < early_stop_performance:
                state.bad_count += 1
            else:
                state.bad_count = 0
        else:
            improvement = None

        state.selected.insert(0, feature)
        state.queue.insert(0, IterationInfo(
            features=[field_names.get(f, f) for f in candidates[winner_idx]],
            phi=winner.phi,
            stdev=winner.stdev,
            phi_stdev=winner.phi_stdev,
        ))
        state.potentials.pop(winner_idx)

        improvement_str = "n/a" if improvement is None else f"{improvement:+.2f}%"
        logger.info(
            f"Iteration {iteration}: added {field_names.get(feature, feature)} "
            f"(phi-stdev={winner.phi_stdev:.4f}, improvement={improvement_str}, "
            f"bad={state.bad_count}/{max_low_perf_iterations})"
        )
        if progress:
            progress.end_phase()

    logger.info(f"Best-first search stopped: {reason}")
    return state, reason
