"""Tests for executor resolution and the executor implementations."""

import os

import pytest

import little_bootstraps._config as _cfg
from little_bootstraps._backends import (
    ExecutorProtocol,
    describe,
    resolve_executor,
)
from little_bootstraps._backends._joblib import JoblibExecutor
from little_bootstraps._backends._sequential import SequentialExecutor
from little_bootstraps.exceptions import InvalidArgument


def _square(v):
    return v * v


def _boom(v):
    if v == 3:
        raise ValueError("bad item 3")
    return v


@pytest.fixture(autouse=True)
def _reset_config():
    _cfg._backend_override = None
    os.environ.pop("LITTLE_BOOTSTRAPS_BACKEND", None)
    yield
    _cfg._backend_override = None


class TestResolveExecutor:
    def test_n_jobs_one_is_sequential(self):
        assert isinstance(resolve_executor("threads", n_jobs=1), SequentialExecutor)

    def test_threads(self):
        ex = resolve_executor("threads", n_jobs=2)
        assert isinstance(ex, JoblibExecutor)
        assert ex.name == "threads"
        assert ex.n_jobs == 2

    def test_processes(self):
        assert resolve_executor("processes", n_jobs=-1).name == "processes"

    def test_sequential_ignores_n_jobs(self):
        assert resolve_executor("sequential", n_jobs=8).name == "sequential"

    def test_configured_policy(self):
        assert resolve_executor(None, n_jobs=2).name == "threads"
        _cfg._backend_override = "processes"
        assert resolve_executor(None, n_jobs=2).name == "processes"

    def test_unknown_name(self):
        with pytest.raises(InvalidArgument, match="Unknown backend"):
            resolve_executor("dask", n_jobs=2)
        with pytest.raises(InvalidArgument, match="Unknown backend"):
            resolve_executor("dask", n_jobs=1)

    @pytest.mark.parametrize("n_jobs", [0, 1.5, True])
    def test_invalid_n_jobs(self, n_jobs):
        with pytest.raises(InvalidArgument, match="n_jobs"):
            resolve_executor("threads", n_jobs=n_jobs)

    def test_protocol(self):
        assert isinstance(SequentialExecutor(), ExecutorProtocol)
        assert isinstance(JoblibExecutor(2), ExecutorProtocol)

    def test_describe(self):
        assert describe(SequentialExecutor()) == "sequential(n_jobs=1)"
        assert describe(JoblibExecutor(3, "processes")) == "processes(n_jobs=3)"


class TestMap:
    @pytest.mark.parametrize(
        "executor",
        [SequentialExecutor(), JoblibExecutor(2, "threads"), JoblibExecutor(2, "processes")],
    )
    def test_order_preserved(self, executor):
        items = [-i for i in range(10)]
        assert executor.map(abs, items) == list(range(10))

    @pytest.mark.parametrize(
        "executor", [SequentialExecutor(), JoblibExecutor(2, "threads")]
    )
    def test_exception_propagates(self, executor):
        with pytest.raises(ValueError, match="bad item 3"):
            executor.map(_boom, [1, 2, 3, 4])

    def test_empty(self):
        assert JoblibExecutor(2).map(_square, []) == []
        assert SequentialExecutor().map(_square, []) == []

    def test_invalid_prefer(self):
        with pytest.raises(InvalidArgument, match="prefer"):
            JoblibExecutor(2, "gpu")
