"""Configuration and result dataclasses for cross-validation and selection.

This module defines the explicit configuration records passed into the
top-level entry points, together with the result objects they return.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pandas as pd

from .validation import validate_integer, validate_resource_id


class ModelKind(Enum):
    """Kind of predictive model trained on each fold."""
    MODEL = "model"
    ENSEMBLE = "ensemble"
    BOOSTED_ENSEMBLE = "boosted_ensemble"
    LOGISTIC_REGRESSION = "logistic_regression"


class ResourceKind(Enum):
    """Remote resource kinds the platform creates."""
    DATASET = "dataset"
    MODEL = "model"
    ENSEMBLE = "ensemble"
    LOGISTIC_REGRESSION = "logisticregression"
    EVALUATION = "evaluation"


class EvaluationMetric(Enum):
    """Evaluation scores that can drive the phi/stdev ranking."""
    AVERAGE_PHI = "average_phi"
    ACCURACY = "accuracy"
    AVERAGE_F_MEASURE = "average_f_measure"
    AVERAGE_PRECISION = "average_precision"
    AVERAGE_RECALL = "average_recall"
    AVERAGE_AUC = "average_area_under_roc_curve"


DEFAULT_BOOSTING = {'iterations': 10}


def _coerce_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls(value)


@dataclass
class CrossValidationConfig:
    """Inputs of a single k-fold cross-validation run.

    Attributes:
        dataset_id: Dataset to cross-validate on.
        k_folds: Number of folds (>= 2).
        objective_id: Objective field id; None uses the dataset default.
        model_kind: Requested model kind. None decides from option shape.
        boosting: Boosting parameters (non-empty implies a boosted ensemble).
        ensemble_options: Extra ensemble options (e.g. number_of_models).
        model_options: Extra model options.
        evaluation_options: Options forwarded to each evaluation.
        weight_field: Field id used as instance weight.
        objective_weights: List of [class, weight] pairs.
        node_threshold: Maximum number of nodes per tree.
        sample_rate: Fraction of rows sampled per model.
        replacement: Sample with replacement.
        randomize: Use random candidate splits (random decision forest).
        seed: Sampling seed.
        delete_resources: Delete fold partitions and models after the run.
        average_evaluations: Create one averaged evaluation from the k evaluations.
            The default run therefore leaves k + 1 evaluations on the platform;
            set False to keep only the k fold evaluations.
        metric: Evaluation score used for phi.
    """
    dataset_id: str
    k_folds: int = 5
    objective_id: Optional[str] = None
    model_kind: Optional[ModelKind] = None
    boosting: Optional[Dict[str, Any]] = None
    ensemble_options: Dict[str, Any] = field(default_factory=dict)
    model_options: Dict[str, Any] = field(default_factory=dict)
    evaluation_options: Dict[str, Any] = field(default_factory=dict)
    weight_field: Optional[str] = None
    objective_weights: Optional[List[List[Any]]] = None
    node_threshold: Optional[int] = None
    sample_rate: Optional[float] = None
    replacement: Optional[bool] = None
    randomize: Optional[bool] = None
    seed: Optional[str] = None
    delete_resources: bool = True
    average_evaluations: bool = True  # k fold evaluations plus one averaged
    metric: EvaluationMetric = EvaluationMetric.AVERAGE_PHI

    def __post_init__(self):
        validate_resource_id(self.dataset_id, 'dataset')
        self.k_folds = validate_integer(self.k_folds, 'k_folds', minimum=2)
        self.model_kind = _coerce_enum(ModelKind, self.model_kind)
        self.metric = _coerce_enum(EvaluationMetric, self.metric)
        if self.node_threshold is not None:
            self.node_threshold = validate_integer(
                self.node_threshold, 'node_threshold', minimum=3
            )
        if (self.boosting is None and not self.ensemble_options
                and not self.model_options and self.model_kind is None):
            self.boosting = dict(DEFAULT_BOOSTING)


@dataclass
class SelectionConfig:
    """Inputs of a best-first feature selection search.

    Attributes:
        dataset_id: Dataset to select features from.
        max_features: Target number of selected features.
        k_folds: Number of folds used by every candidate cross-validation.
        objective_id: Objective field id; None uses the dataset default.
        model_kind: Requested model kind. None decides from option shape.
        model_options: Flat model options map (superset maps are tolerated).
        evaluation_options: Options forwarded to each evaluation.
        pre_selected_fields: Field ids selected before the search starts.
        early_stop_performance: Minimum relative improvement (percent)
            for an iteration to count as good.
        max_low_perf_iterations: Consecutive bad iterations that stop the search.
        n_jobs: Parallel candidate cross-validations per iteration.
        delete_resources: Delete models, evaluations and partitions as they
            stop being needed.
        create_output_dataset: Create a dataset restricted to the selected
            fields plus the objective.
        ranking_seed: Seed for the randomized forest used to rank features.
        metric: Evaluation score used for phi.
    """
    dataset_id: str
    max_features: int
    k_folds: int = 5
    objective_id: Optional[str] = None
    model_kind: Optional[ModelKind] = None
    model_options: Dict[str, Any] = field(default_factory=dict)
    evaluation_options: Dict[str, Any] = field(default_factory=dict)
    pre_selected_fields: List[str] = field(default_factory=list)
    early_stop_performance: float = 1.0
    max_low_perf_iterations: int = 4
    n_jobs: int = 1
    delete_resources: bool = True
    create_output_dataset: bool = True
    ranking_seed: Optional[str] = None
    metric: EvaluationMetric = EvaluationMetric.AVERAGE_PHI

    def __post_init__(self):
        validate_resource_id(self.dataset_id, 'dataset')
        self.max_features = validate_integer(self.max_features, 'max_features', minimum=1)
        self.k_folds = validate_integer(self.k_folds, 'k_folds', minimum=2)
        self.max_low_perf_iterations = validate_integer(
            self.max_low_perf_iterations, 'max_low_perf_iterations', minimum=1
        )
        self.n_jobs = validate_integer(self.n_jobs, 'n_jobs', minimum=-1)
        if self.n_jobs == 0:
            self.n_jobs = 1
        self.model_kind = _coerce_enum(ModelKind, self.model_kind)
        self.metric = _coerce_enum(EvaluationMetric, self.metric)
        self.early_stop_performance = float(self.early_stop_performance)
        self.pre_selected_fields = list(self.pre_selected_fields or [])


@dataclass
class ProgressConfig:
    """Configuration for progress reporting.

    Attributes:
        enable_console_logging: Whether to report progress through logging.
        update_frequency_evals: Report every N cross-validations.
        update_frequency_seconds: Report at least every N seconds.
        progress_callback: Optional callback function for custom progress handling.
        verbose: Verbosity level (0=silent, 1=phases, 2=detailed).
    """
    enable_console_logging: bool = True
    update_frequency_evals: int = 1
    update_frequency_seconds: float = 30.0
    progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None
    verbose: int = 1


@dataclass
class CrossValidationResult:
    """Aggregate of the k evaluations of one cross-validation.

    Attributes:
        phi: Mean of the per-fold scores.
        stdev: Population standard deviation of the per-fold scores.
        phi_stdev: phi - stdev, the ranking score.
        scores: Per-fold scores in fold order.
        model_ids: Models trained per fold (may already be deleted).
        evaluation_ids: Evaluations created per fold.
    """
    phi: float
    stdev: float
    phi_stdev: float
    scores: List[float] = field(default_factory=list)
    model_ids: List[str] = field(default_factory=list)
    evaluation_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, float]:
        return {'phi': self.phi, 'stdev': self.stdev, 'phi-stdev': self.phi_stdev}

    def __repr__(self) -> str:
        return (f"CrossValidationResult(k={len(self.scores)}, "
                f"phi={self.phi:.4f}±{self.stdev:.4f})")


@dataclass
class CrossValidationReport:
    """Outcome of the cross-validation entry point."""
    result: CrossValidationResult
    evaluation_ids: List[str]
    averaged_evaluation_id: Optional[str] = None


@dataclass
class FeatureRanking:
    """Candidate features ranked by ensemble importance.

    Attributes:
        field_ids: Candidate field ids, most important first.
        importance_scores: Dict of field id -> importance score.
    """
    field_ids: List[str]
    importance_scores: Dict[str, float]


@dataclass
class IterationInfo:
    """Result recorded for the winning candidate of one search iteration."""
    features: List[str]
    phi: float
    stdev: float
    phi_stdev: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'features': list(self.features),
            'phi': self.phi,
            'stdev': self.stdev,
            'phi-stdev': self.phi_stdev,
        }


@dataclass
class SelectionResult:
    """Outcome of a best-first feature selection search.

    Attributes:
        selected_fields: Selected field names, most recently chosen first.
        selected_field_ids: Matching field ids.
        iterations_info: One record per iteration, most recent first.
        stop_reason: Why the search stopped.
        output_dataset_id: Dataset restricted to the selection, if created.
    """
    selected_fields: List[str]
    selected_field_ids: List[str]
    iterations_info: List[IterationInfo]
    stop_reason: str
    output_dataset_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'selected-fields': list(self.selected_fields),
            'iterations-info': [info.to_dict() for info in self.iterations_info],
        }

    def iterations_frame(self) -> pd.DataFrame:
        """Iteration records as a DataFrame, first iteration first."""
        rows = []
        for number, info in enumerate(reversed(self.iterations_info), start=1):
            rows.append({
                'iteration': number,
                'n_features': len(info.features),
                'phi': info.phi,
                'stdev': info.stdev,
                'phi_stdev': info.phi_stdev,
                'features': ', '.join(info.features),
            })
        columns = ['iteration', 'n_features', 'phi', 'stdev', 'phi_stdev', 'features']
        return pd.DataFrame(rows, columns=columns).set_index('iteration')


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load run configurations from a YAML file.

    The file may hold a ``cross_validation`` section, a ``selection``
    section, or both. Each section maps directly onto the fields of the
    corresponding dataclass.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Dict with keys 'cross_validation' and/or 'selection' mapped to
        CrossValidationConfig / SelectionConfig instances.
    """
    import yaml

    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    configs: Dict[str, Any] = {}
    if 'cross_validation' in data:
        configs['cross_validation'] = CrossValidationConfig(**data['cross_validation'])
    if 'selection' in data:
        configs['selection'] = SelectionConfig(**data['selection'])
    return configs
