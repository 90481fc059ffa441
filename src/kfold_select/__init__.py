"""K-fold cross-validation and best-first feature selection on a remote
modeling platform.

The platform trains and evaluates the models; this package decides what
to train and evaluate and how to combine the results:

- Row-disjoint k-fold partitioning of a remote dataset
- Per-fold model/evaluation fan-out with phi, stdev and phi - stdev aggregation
- Best-first feature selection with early stopping on relative degradation

Quick Start
-----------
```python
from kfold_select import (
    CrossValidationConfig, PlatformClient, SelectionConfig,
    run_best_first_selection, run_cross_validation,
)

client = PlatformClient.from_env()

report = run_cross_validation(
    CrossValidationConfig(dataset_id="dataset/5143a51a37203f2cf7000972", k_folds=5),
    client,
)
print(report.result.to_dict())

result = run_best_first_selection(
    SelectionConfig(dataset_id="dataset/5143a51a37203f2cf7000972", max_features=8),
    client,
)
print(result.selected_fields)
print(result.iterations_frame())
```

Running Individual Steps
------------------------
```python
from kfold_select import create_k_folds, pair_k_folds, cross_validate

partitions = create_k_folds(client, dataset_id, 5)
result = cross_validate(client, pair_k_folds(partitions), "species", "iris",
                        model_options={"number_of_models": 10})
```
"""

# Configuration and results
from .config import (
    ModelKind,
    ResourceKind,
    EvaluationMetric,
    CrossValidationConfig,
    SelectionConfig,
    ProgressConfig,
    CrossValidationResult,
    CrossValidationReport,
    FeatureRanking,
    IterationInfo,
    SelectionResult,
    load_config,
)

# Errors
from .errors import (
    ErrorCode,
    KFoldSelectError,
    InputError,
    ValidationError,
    DegenerateInputError,
    RemoteCallError,
    ResourceFailedError,
    WaitTimeoutError,
)

# Platform access
from .client import PlatformClient
from .resources import (
    CreateResult,
    try_create,
    safe_create,
    safe_delete,
    delete_all,
    wait_all,
)

# Folds, options, evaluation
from .folds import create_k_folds, pair_k_folds
from .options import project, build_model_options, OPTION_ALLOW_LISTS
from .evaluation import (
    SubsetEvaluator,
    aggregate_scores,
    cross_validate,
    extract_score,
)

# Selection
from .algorithms import (
    SelectionState,
    best_first_selection,
    compute_initial_ranking,
    relative_improvement,
)

# Entry points
from .search import run_best_first_selection, run_cross_validation

# Progress
from .progress import ProgressTracker, create_progress_tracker, format_duration

__all__ = [
    # Enums
    'ModelKind',
    'ResourceKind',
    'EvaluationMetric',
    # Configs
    'CrossValidationConfig',
    'SelectionConfig',
    'ProgressConfig',
    'load_config',
    # Results
    'CrossValidationResult',
    'CrossValidationReport',
    'FeatureRanking',
    'IterationInfo',
    'SelectionResult',
    # Errors
    'ErrorCode',
    'KFoldSelectError',
    'InputError',
    'ValidationError',
    'DegenerateInputError',
    'RemoteCallError',
    'ResourceFailedError',
    'WaitTimeoutError',
    # Platform
    'PlatformClient',
    'CreateResult',
    'try_create',
    'safe_create',
    'safe_delete',
    'delete_all',
    'wait_all',
    # Folds / options / evaluation
    'create_k_folds',
    'pair_k_folds',
    'project',
    'build_model_options',
    'OPTION_ALLOW_LISTS',
    'SubsetEvaluator',
    'aggregate_scores',
    'cross_validate',
    'extract_score',
    # Selection
    'SelectionState',
    'best_first_selection',
    'compute_initial_ranking',
    'relative_improvement',
    # Entry points
    'run_cross_validation',
    'run_best_first_selection',
    # Progress
    'ProgressTracker',
    'create_progress_tracker',
    'format_duration',
]

__version__ = '1.0.0'
