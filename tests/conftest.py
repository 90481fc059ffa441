"""
Pytest fixtures for testing cross-validation and feature selection.

This module provides an in-memory modeling platform that implements the
client interface (create/fetch/delete/wait), materialises row-offset /
row-step partitions over integer row ids and returns deterministic
evaluation scores.
"""
import copy
import itertools
import threading
from typing import Any, Callable, Dict, List, Optional

import pytest

from kfold_select.config import CrossValidationResult
from kfold_select.errors import RemoteCallError, ResourceFailedError


def make_fields(n_features: int = 4, objective_optype: str = 'categorical') -> Dict[str, dict]:
    """Field map with n numeric features followed by the objective."""
    fields = {
        f"{i:06x}": {'name': f"f{i}", 'optype': 'numeric', 'preferred': True}
        for i in range(n_features)
    }
    fields[f"{n_features:06x}"] = {
        'name': 'label', 'optype': objective_optype, 'preferred': True
    }
    return fields


class FakePlatform:
    """In-memory stand-in for the modeling platform.

    Attributes:
        resources: Live resources by id.
        calls: Log of (operation, kind or id, args) tuples in call order.
        feature_gains: Field id -> contribution to an evaluation's score.
        fold_offsets: Per-fold score offsets (index = holdout row_offset).
        importance: Importance map returned by ranking ensembles.
    """

    def __init__(self):
        self.resources: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.deleted: List[str] = []
        self.feature_gains: Dict[str, float] = {}
        self.base_score: float = 0.5
        self.fold_offsets: List[float] = [0.0]
        self.importance: Dict[str, float] = {}
        self.score_fn: Optional[Callable[[Dict[str, Any], Dict[str, Any]], float]] = None
        self._failures: Dict[str, int] = {}
        self._faulty_kinds: set = set()
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    # -- test helpers -------------------------------------------------------

    def add_dataset(
        self,
        rows: int = 100,
        fields: Optional[Dict[str, dict]] = None,
        name: str = 'iris',
        objective_id: Optional[str] = None
    ) -> str:
        fields = fields if fields is not None else make_fields()
        if objective_id is None and fields:
            objective_id = list(fields)[-1]
        dataset_id = self._new_id('dataset')
        self.resources[dataset_id] = {
            'resource': dataset_id,
            'name': name,
            'rows': rows,
            'row_ids': list(range(rows)),
            'fields': copy.deepcopy(fields),
            'objective_field': {'id': objective_id},
            'status': {'code': 5},
        }
        return dataset_id

    def fail_next_creates(self, kind: str, times: int = 1):
        self._failures[kind] = times

    def make_faulty(self, kind: str):
        self._faulty_kinds.add(kind)

    def live(self, kind: str) -> List[str]:
        return [rid for rid in self.resources if rid.startswith(kind + '/')]

    def created(self, kind: str) -> List[Dict[str, Any]]:
        return [args for op, k, args in self.calls if op == 'create' and k == kind]

    # -- platform interface -------------------------------------------------

    def _new_id(self, kind: str) -> str:
        return f"{kind}/{next(self._counter):024x}"

    def create(self, kind: str, args: Dict[str, Any]) -> str:
        with self._lock:
            self.calls.append(('create', kind, copy.deepcopy(args)))
            if self._failures.get(kind, 0) > 0:
                self._failures[kind] -= 1
                raise RemoteCallError(f"create {kind} failed", status_code=500)

            resource_id = self._new_id(kind)
            doc = {'resource': resource_id, 'status': {'code': 5}, 'args': copy.deepcopy(args)}
            if kind in self._faulty_kinds:
                doc['status'] = {'code': -1, 'message': 'faulty'}

            if kind == 'dataset':
                doc.update(self._derive_dataset(args))
            elif kind == 'ensemble' and args.get('randomize'):
                doc['importance'] = dict(self.importance)
            elif kind == 'evaluation':
                doc['result'] = {'model': {'average_phi': self._score(args)}}

            self.resources[resource_id] = doc
            return resource_id

    def _derive_dataset(self, args: Dict[str, Any]) -> Dict[str, Any]:
        origin = self.resources[args['origin_dataset']]
        row_ids = origin['row_ids']
        if 'row_step' in args:
            row_ids = row_ids[args['row_offset']::args['row_step']]
        fields = origin['fields']
        if 'input_fields' in args:
            fields = {fid: f for fid, f in fields.items() if fid in args['input_fields']}
        return {
            'name': args.get('name', origin['name']),
            'rows': len(row_ids),
            'row_ids': list(row_ids),
            'row_offset': args.get('row_offset'),
            'fields': copy.deepcopy(fields),
            'objective_field': origin['objective_field'],
        }

    def _score(self, args: Dict[str, Any]) -> float:
        if 'evaluations' in args:
            scores = [self.resources[e]['result']['model']['average_phi']
                      for e in args['evaluations']]
            return sum(scores) / len(scores)

        holdout = self.resources[args['dataset']]
        model_id = next(v for k, v in args.items()
                        if k in ('model', 'ensemble', 'logisticregression'))
        model_args = self.resources[model_id]['args']
        if self.score_fn is not None:
            return self.score_fn(model_args, holdout)

        fold_idx = holdout.get('row_offset') or 0
        offset = self.fold_offsets[fold_idx % len(self.fold_offsets)]
        gains = sum(self.feature_gains.get(f, 0.0) for f in model_args.get('input_fields', []))
        return self.base_score + gains + offset

    def fetch(self, resource_id: str) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(('fetch', resource_id, None))
            if resource_id not in self.resources:
                raise RemoteCallError(f"{resource_id} not found", status_code=404,
                                      resource_id=resource_id)
            return copy.deepcopy(self.resources[resource_id])

    def delete(self, resource_id: str) -> None:
        with self._lock:
            self.calls.append(('delete', resource_id, None))
            if resource_id not in self.resources:
                raise RemoteCallError(f"{resource_id} not found", status_code=404,
                                      resource_id=resource_id)
            del self.resources[resource_id]
            self.deleted.append(resource_id)

    def wait(self, resource_id: str) -> Dict[str, Any]:
        doc = self.fetch(resource_id)
        with self._lock:
            self.calls.append(('wait', resource_id, None))
        if doc['status']['code'] != 5:
            raise ResourceFailedError(f"{resource_id} failed", resource_id=resource_id)
        return doc


class TableEvaluator:
    """Evaluator stub scoring a subset with a function of its field ids."""

    def __init__(self, score_fn: Callable[[List[str]], float], stdev: float = 0.0):
        self.score_fn = score_fn
        self.stdev = stdev
        self.calls: List[List[str]] = []
        self._lock = threading.Lock()

    def evaluate(self, field_ids):
        field_ids = list(field_ids)
        with self._lock:
            self.calls.append(field_ids)
        phi = self.score_fn(field_ids)
        return CrossValidationResult(
            phi=phi, stdev=self.stdev, phi_stdev=phi - self.stdev, scores=[phi]
        )


@pytest.fixture
def platform():
    """Empty in-memory platform."""
    return FakePlatform()


@pytest.fixture
def dataset_id(platform):
    """100-row dataset with four numeric features and a categorical objective."""
    return platform.add_dataset(rows=100)


@pytest.fixture
def gains_evaluator():
    """Evaluator whose score is the sum of fixed per-feature gains."""
    def make(gains: Dict[str, float], stdev: float = 0.0) -> TableEvaluator:
        return TableEvaluator(lambda fields: sum(gains.get(f, 0.0) for f in fields), stdev)
    return make
