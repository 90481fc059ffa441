#!/usr/bin/env python3
"""
Command line entry point for cross-validation and best-first selection.

Credentials are read from the environment (KFOLD_USERNAME, KFOLD_API_KEY,
optionally KFOLD_URL), with a .env file in the working directory loaded
first.

Usage:
    kfold-select cross-validate dataset/5143a51a37203f2cf7000972 --k-folds 5
    kfold-select cross-validate dataset/5143a51a37203f2cf7000972 --number-of-models 10
    kfold-select best-first dataset/5143a51a37203f2cf7000972 --max-features 8
    kfold-select best-first --config selection.yaml
    kfold-select cross-validate dataset/5143a51a37203f2cf7000972 --config cv.yaml --keep-resources
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .client import PlatformClient
from .config import (
    CrossValidationConfig, EvaluationMetric, ModelKind, ProgressConfig,
    SelectionConfig, load_config
)
from .errors import InputError, RemoteCallError
from .progress import create_progress_tracker
from .search import run_best_first_selection, run_cross_validation

logger = logging.getLogger(__name__)


def _json_arg(value: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return parsed


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("dataset_id", nargs="?", help="Dataset id (dataset/<id>)")
    parser.add_argument("--config", type=Path,
                        help="YAML configuration file; only the dataset id and "
                             "--keep-resources override it")
    parser.add_argument("--k-folds", type=int, default=5, help="Number of folds (>= 2)")
    parser.add_argument("--objective", dest="objective_id",
                        help="Objective field id (default: dataset objective)")
    parser.add_argument("--model-kind", choices=[k.value for k in ModelKind],
                        help="Model kind (default: decided from options)")
    parser.add_argument("--evaluation-options", type=_json_arg, default={},
                        help="Evaluation options as a JSON object")
    parser.add_argument("--metric", choices=[m.value for m in EvaluationMetric],
                        default=EvaluationMetric.AVERAGE_PHI.value,
                        help="Evaluation score used for phi")
    parser.add_argument("--keep-resources", action="store_true",
                        help="Do not delete intermediate resources")
    parser.add_argument("--verbose", "-v", action="count", default=1,
                        help="Increase progress verbosity")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kfold-select",
        description="K-fold cross-validation and best-first feature selection "
                    "on a remote modeling platform"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cv = subparsers.add_parser("cross-validate", help="Run one k-fold cross-validation")
    _add_common_arguments(cv)
    cv.add_argument("--boosting", type=_json_arg, help="Boosting options as a JSON object")
    cv.add_argument("--ensemble-options", type=_json_arg, default={},
                    help="Ensemble options as a JSON object")
    cv.add_argument("--model-options", type=_json_arg, default={},
                    help="Model options as a JSON object")
    cv.add_argument("--number-of-models", type=int, help="Models per ensemble")
    cv.add_argument("--weight-field", help="Field id used as instance weight")
    cv.add_argument("--objective-weights", type=json.loads,
                    help='Objective weights as JSON, e.g. [["yes", 2]]')
    cv.add_argument("--node-threshold", type=int, help="Maximum nodes per tree")
    cv.add_argument("--sample-rate", type=float, help="Row sampling rate")
    cv.add_argument("--replacement", action="store_true", default=None,
                    help="Sample with replacement")
    cv.add_argument("--randomize", action="store_true", default=None,
                    help="Random candidate splits")
    cv.add_argument("--seed", help="Sampling seed")
    cv.add_argument("--no-average", action="store_true",
                    help="Do not create the averaged evaluation")

    bf = subparsers.add_parser("best-first", help="Run best-first feature selection")
    _add_common_arguments(bf)
    bf.add_argument("--max-features", type=int, help="Number of features to select")
    bf.add_argument("--model-options", type=_json_arg, default={},
                    help="Model options as a JSON object")
    bf.add_argument("--pre-selected", nargs="*", default=[],
                    help="Field ids selected before the search")
    bf.add_argument("--early-stop-performance", type=float, default=1.0,
                    help="Minimum percent improvement of a good iteration")
    bf.add_argument("--max-low-perf-iterations", type=int, default=4,
                    help="Bad iterations in a row that stop the search")
    bf.add_argument("--n-jobs", type=int, default=1,
                    help="Parallel candidate cross-validations")
    bf.add_argument("--no-output-dataset", action="store_true",
                    help="Do not create the dataset of selected fields")
    bf.add_argument("--ranking-seed", help="Seed for the importance ranking forest")

    return parser


def cross_validation_config(args: argparse.Namespace) -> CrossValidationConfig:
    ensemble_options = dict(args.ensemble_options)
    if args.number_of_models is not None:
        ensemble_options['number_of_models'] = args.number_of_models

    return CrossValidationConfig(
        dataset_id=args.dataset_id,
        k_folds=args.k_folds,
        objective_id=args.objective_id,
        model_kind=args.model_kind,
        boosting=args.boosting,
        ensemble_options=ensemble_options,
        model_options=args.model_options,
        evaluation_options=args.evaluation_options,
        weight_field=args.weight_field,
        objective_weights=args.objective_weights,
        node_threshold=args.node_threshold,
        sample_rate=args.sample_rate,
        replacement=args.replacement,
        randomize=args.randomize,
        seed=args.seed,
        delete_resources=not args.keep_resources,
        average_evaluations=not args.no_average,
        metric=args.metric,
    )


def selection_config(args: argparse.Namespace) -> SelectionConfig:
    return SelectionConfig(
        dataset_id=args.dataset_id,
        max_features=args.max_features,
        k_folds=args.k_folds,
        objective_id=args.objective_id,
        model_kind=args.model_kind,
        model_options=args.model_options,
        evaluation_options=args.evaluation_options,
        pre_selected_fields=args.pre_selected,
        early_stop_performance=args.early_stop_performance,
        max_low_perf_iterations=args.max_low_perf_iterations,
        n_jobs=args.n_jobs,
        delete_resources=not args.keep_resources,
        create_output_dataset=not args.no_output_dataset,
        ranking_seed=args.ranking_seed,
        metric=args.metric,
    )


CONFIG_SECTIONS = {
    "cross-validate": "cross_validation",
    "best-first": "selection",
}


def config_from_file(parser: argparse.ArgumentParser, args: argparse.Namespace):
    """Load the section of --config matching the command.

    A dataset id given on the command line and --keep-resources override
    the file; other options come from the file only.
    """
    section = CONFIG_SECTIONS[args.command]
    try:
        configs = load_config(args.config)
    except (OSError, TypeError, yaml.YAMLError) as e:
        parser.error(f"cannot load {args.config}: {e}")
    if section not in configs:
        parser.error(f"{args.config} has no '{section}' section")

    config = configs[section]
    if args.dataset_id:
        config.dataset_id = args.dataset_id
    if args.keep_resources:
        config.delete_resources = False
    return config


def main(argv: Optional[List[str]] = None, client: Optional[PlatformClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv(Path.cwd() / '.env')
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if not args.config and not args.dataset_id:
        parser.error("a dataset id or --config is required")

    progress = create_progress_tracker(ProgressConfig(verbose=args.verbose))

    try:
        if args.config:
            config = config_from_file(parser, args)
        elif args.command == "cross-validate":
            config = cross_validation_config(args)
        else:
            config = selection_config(args)

        client = client or PlatformClient.from_env()
        if args.command == "cross-validate":
            report = run_cross_validation(config, client, progress)
            output = {
                **report.result.to_dict(),
                'evaluations': report.evaluation_ids,
                'averaged_evaluation': report.averaged_evaluation_id,
            }
        else:
            result = run_best_first_selection(config, client, progress)
            output = {
                **result.to_dict(),
                'stop-reason': result.stop_reason,
                'output-dataset': result.output_dataset_id,
            }
    except InputError as e:
        logger.error(str(e))
        return 2
    except RemoteCallError as e:
        logger.error(f"Remote call failed: {e}")
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
