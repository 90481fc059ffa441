"""
Tests for option projection onto per-kind allow-lists.
"""
from kfold_select.config import CrossValidationConfig, ModelKind, ResourceKind
from kfold_select.options import (
    BOOSTED_ENSEMBLE_OPTIONS, EVALUATION_OPTIONS, LOGISTIC_REGRESSION_OPTIONS,
    build_model_options, infer_model_kind, project
)

DATASET = 'dataset/' + 'a' * 24


class TestInferModelKind:
    """Tests for infer_model_kind."""

    def test_boosting_selects_boosted_ensemble(self):
        assert infer_model_kind({'boosting': {'iterations': 10}}) == ModelKind.BOOSTED_ENSEMBLE

    def test_empty_boosting_is_ignored(self):
        assert infer_model_kind({'boosting': {}}) == ModelKind.MODEL

    def test_many_models_select_ensemble(self):
        assert infer_model_kind({'number_of_models': 10}) == ModelKind.ENSEMBLE

    def test_single_model(self):
        assert infer_model_kind({'number_of_models': 1}) == ModelKind.MODEL

    def test_logistic_regression_always_honoured(self):
        kind = infer_model_kind({'boosting': {'iterations': 10}}, ModelKind.LOGISTIC_REGRESSION)
        assert kind == ModelKind.LOGISTIC_REGRESSION


class TestProject:
    """Tests for project."""

    def test_boosting_routes_to_boosted_allow_list(self):
        projected = project({'boosting': {'iterations': 10}, 'pruning': 'smart'})

        assert projected.resource_kind == ResourceKind.ENSEMBLE
        assert projected.model_kind == ModelKind.BOOSTED_ENSEMBLE
        assert projected.model_options == {'boosting': {'iterations': 10}}
        assert set(projected.model_options) <= BOOSTED_ENSEMBLE_OPTIONS

    def test_single_model_requests_model(self):
        projected = project({'number_of_models': 1, 'sample_rate': 0.8})

        assert projected.resource_kind == ResourceKind.MODEL
        assert projected.model_options == {'sample_rate': 0.8}

    def test_unknown_keys_dropped(self):
        projected = project(
            {'number_of_models': 5, 'not_an_option': 1, 'c': 1.0},
            {'sample_rate': 0.5, 'bogus': True}
        )

        assert projected.model_options == {'number_of_models': 5}
        assert projected.evaluation_options == {'sample_rate': 0.5}

    def test_logistic_regression_options(self):
        projected = project(
            {'c': 2.0, 'normalize': True, 'node_threshold': 100},
            model_kind=ModelKind.LOGISTIC_REGRESSION
        )

        assert projected.resource_kind == ResourceKind.LOGISTIC_REGRESSION
        assert projected.model_options == {'c': 2.0, 'normalize': True}
        assert set(projected.model_options) <= LOGISTIC_REGRESSION_OPTIONS

    def test_none_values_not_forwarded(self):
        projected = project({'seed': None, 'input_fields': ['000001']})
        assert projected.model_options == {'input_fields': ['000001']}

    def test_evaluation_allow_list(self):
        assert 'missing_strategy' in EVALUATION_OPTIONS
        assert 'boosting' not in EVALUATION_OPTIONS

    def test_input_not_mutated(self):
        options = {'number_of_models': 3, 'junk': 1}
        project(options)
        assert options == {'number_of_models': 3, 'junk': 1}


class TestBuildModelOptions:
    """Tests for build_model_options."""

    def test_default_boosting(self):
        config = CrossValidationConfig(dataset_id=DATASET)
        assert build_model_options(config) == {'boosting': {'iterations': 10}}

    def test_scalars_merged_when_set(self):
        config = CrossValidationConfig(
            dataset_id=DATASET,
            ensemble_options={'number_of_models': 20},
            weight_field='000002',
            node_threshold=64,
            sample_rate=0.9,
            seed='abc',
        )
        options = build_model_options(config)

        assert options == {
            'number_of_models': 20,
            'weight_field': '000002',
            'node_threshold': 64,
            'sample_rate': 0.9,
            'seed': 'abc',
        }
        assert 'boosting' not in options
