"""K-fold partitioning of a remote dataset.

Each fold is a derived dataset holding every k-th row of the origin
dataset, starting at the fold index. Folds are therefore pairwise
disjoint and together cover every row.
"""

import logging
from typing import List, Sequence, Tuple

from .config import ResourceKind
from .resources import Platform, safe_create, wait_all
from .validation import validate_integer, validate_resource_id

logger = logging.getLogger(__name__)

FoldPair = Tuple[str, List[str]]


def fold_arguments(dataset_id: str, fold_idx: int, k: int) -> dict:
    """Creation arguments for fold fold_idx of a k-fold split."""
    return {
        'origin_dataset': dataset_id,
        'row_offset': fold_idx,
        'row_step': k,
        'new_fields': [{'name': 'k_fold', 'field': str(fold_idx)}],
    }


def create_k_folds(client: Platform, dataset_id: str, k: int) -> List[str]:
    """Split a dataset into k row-disjoint partitions.

    All k creations are requested before any of them is waited on.

    Args:
        client: Platform client.
        dataset_id: Dataset to split.
        k: Number of folds (integer >= 2).

    Returns:
        Partition ids in fold order.
    """
    validate_resource_id(dataset_id, 'dataset')
    k = validate_integer(k, 'k_folds', minimum=2)

    partition_ids = [
        safe_create(client, ResourceKind.DATASET.value, fold_arguments(dataset_id, i, k))
        for i in range(k)
    ]
    logger.info(f"Requested {k} fold partitions of {dataset_id}")
    return wait_all(client, partition_ids)


def pair_k_folds(partition_ids: Sequence[str]) -> List[FoldPair]:
    """Pair every partition with the complementary k-1 partitions.

    Args:
        partition_ids: Partition ids in fold order.

    Returns:
        List of (holdout_id, training_ids) tuples, one per fold.
    """
    return [
        (holdout, [p for j, p in enumerate(partition_ids) if j != i])
        for i, holdout in enumerate(partition_ids)
    ]
