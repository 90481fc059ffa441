"""
Tests for configuration dataclasses, results and YAML loading.
"""
import pytest

from kfold_select.config import (
    CrossValidationConfig, CrossValidationResult, EvaluationMetric, IterationInfo,
    ModelKind, SelectionConfig, SelectionResult, load_config
)
from kfold_select.errors import ErrorCode, ValidationError

DATASET = 'dataset/5143a51a37203f2cf7000972'


class TestCrossValidationConfig:
    """Tests for CrossValidationConfig."""

    def test_defaults(self):
        config = CrossValidationConfig(dataset_id=DATASET)

        assert config.k_folds == 5
        assert config.boosting == {'iterations': 10}
        assert config.delete_resources is True
        assert config.metric == EvaluationMetric.AVERAGE_PHI

    def test_no_default_boosting_with_options(self):
        config = CrossValidationConfig(dataset_id=DATASET,
                                       ensemble_options={'number_of_models': 10})
        assert config.boosting is None

    def test_enum_coercion(self):
        config = CrossValidationConfig(dataset_id=DATASET, model_kind='ensemble',
                                       metric='accuracy')
        assert config.model_kind == ModelKind.ENSEMBLE
        assert config.metric == EvaluationMetric.ACCURACY

    def test_invalid_dataset_id(self):
        with pytest.raises(ValidationError) as exc_info:
            CrossValidationConfig(dataset_id='model/5143a51a37203f2cf7000972')
        assert exc_info.value.code == ErrorCode.WRONG_RESOURCE_TYPE

    def test_k_folds_minimum(self):
        with pytest.raises(ValidationError) as exc_info:
            CrossValidationConfig(dataset_id=DATASET, k_folds=1)
        assert exc_info.value.code == ErrorCode.BELOW_MINIMUM

    def test_node_threshold_minimum(self):
        with pytest.raises(ValidationError) as exc_info:
            CrossValidationConfig(dataset_id=DATASET, node_threshold=2)
        assert exc_info.value.code == ErrorCode.BELOW_MINIMUM

    def test_unknown_model_kind(self):
        with pytest.raises(ValueError):
            CrossValidationConfig(dataset_id=DATASET, model_kind='svm')


class TestSelectionConfig:
    """Tests for SelectionConfig."""

    def test_defaults(self):
        config = SelectionConfig(dataset_id=DATASET, max_features=3)

        assert config.early_stop_performance == 1.0
        assert config.max_low_perf_iterations == 4
        assert config.n_jobs == 1
        assert config.create_output_dataset is True

    def test_max_features_validated(self):
        with pytest.raises(ValidationError) as exc_info:
            SelectionConfig(dataset_id=DATASET, max_features=0)
        assert exc_info.value.code == ErrorCode.BELOW_MINIMUM

        with pytest.raises(ValidationError) as exc_info:
            SelectionConfig(dataset_id=DATASET, max_features=None)
        assert exc_info.value.code == ErrorCode.NOT_AN_INTEGER

    def test_n_jobs_zero_means_sequential(self):
        assert SelectionConfig(dataset_id=DATASET, max_features=3, n_jobs=0).n_jobs == 1
        assert SelectionConfig(dataset_id=DATASET, max_features=3, n_jobs=-1).n_jobs == -1

    def test_max_low_perf_iterations_minimum(self):
        with pytest.raises(ValidationError):
            SelectionConfig(dataset_id=DATASET, max_features=3, max_low_perf_iterations=0)


class TestResults:
    """Tests for result serialisation."""

    def test_cross_validation_result_dict(self):
        result = CrossValidationResult(phi=0.8, stdev=0.1, phi_stdev=0.7)
        assert result.to_dict() == {'phi': 0.8, 'stdev': 0.1, 'phi-stdev': 0.7}

    def test_iterations_frame_first_iteration_first(self):
        result = SelectionResult(
            selected_fields=['b', 'a'],
            selected_field_ids=['000001', '000000'],
            iterations_info=[
                IterationInfo(['b', 'a'], 0.9, 0.05, 0.85),
                IterationInfo(['a'], 0.7, 0.1, 0.6),
            ],
            stop_reason='max_features',
        )

        frame = result.iterations_frame()

        assert list(frame.index) == [1, 2]
        assert list(frame['phi_stdev']) == [0.6, 0.85]
        assert frame.loc[2, 'features'] == 'b, a'
        assert result.to_dict()['iterations-info'][0]['phi-stdev'] == 0.85


class TestLoadConfig:
    """Tests for load_config."""

    def test_both_sections(self, tmp_path):
        path = tmp_path / 'run.yaml'
        path.write_text(
            "cross_validation:\n"
            f"  dataset_id: {DATASET}\n"
            "  k_folds: 10\n"
            "  ensemble_options:\n"
            "    number_of_models: 20\n"
            "selection:\n"
            f"  dataset_id: {DATASET}\n"
            "  max_features: 4\n"
            "  pre_selected_fields: ['000001']\n"
            "  n_jobs: 4\n"
        )

        configs = load_config(path)

        cv = configs['cross_validation']
        assert isinstance(cv, CrossValidationConfig)
        assert cv.k_folds == 10
        assert cv.ensemble_options == {'number_of_models': 20}
        assert cv.boosting is None

        selection = configs['selection']
        assert isinstance(selection, SelectionConfig)
        assert selection.max_features == 4
        assert selection.pre_selected_fields == ['000001']
        assert selection.n_jobs == 4

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text(f"cross_validation:\n  dataset_id: {DATASET}\n  k_folds: 1\n")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("")
        assert load_config(path) == {}
