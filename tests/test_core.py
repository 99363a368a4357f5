"""End-to-end tests for fit_model and blb_regression."""

import warnings

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from little_bootstraps import (
    FittedModel,
    ModelSpec,
    blb_regression,
    fit_model,
    split_data,
)
from little_bootstraps._backends._sequential import SequentialExecutor
from little_bootstraps.exceptions import (
    InvalidArgument,
    NonConvergence,
    SchemaMismatch,
    SingularFit,
)
from little_bootstraps.families import LogisticFamily


def _make_linear_data(n=600, seed=42):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(n)
    return pd.DataFrame({"x": x, "y": 1.0 + 2.0 * x + rng.standard_normal(n)})


def _make_binary_data(n=600, seed=42):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(n)
    probs = 1 / (1 + np.exp(-(-0.5 + 1.5 * x)))
    return pd.DataFrame({"x": x, "y": rng.binomial(1, probs)})


def _partitions(df, m=3):
    return split_data(df, m, random_state=0)


@pytest.fixture()
def linear_spec():
    return ModelSpec("continuous", "y", ("x",))


# ------------------------------------------------------------------ #
# Continuous family
# ------------------------------------------------------------------ #


class TestContinuousFit:
    def test_returns_fitted_model(self, linear_spec):
        fit = fit_model(linear_spec, _partitions(_make_linear_data()), 50, random_state=0)
        assert isinstance(fit, FittedModel)
        assert fit.n_partitions == 3
        assert fit.n_boot == 50
        assert all(len(sub) == 50 for sub in fit.subsamples)

    def test_n_true_defaults_to_total_rows(self, linear_spec):
        fit = fit_model(linear_spec, _partitions(_make_linear_data()), 5, random_state=0)
        assert fit.n_true == 600
        assert fit.context.n_true == 600

    def test_estimates_near_full_data_ols(self, linear_spec):
        df = _make_linear_data()
        fit = fit_model(linear_spec, _partitions(df), 300, random_state=0)
        ols = sm.OLS(df["y"], sm.add_constant(df["x"])).fit()
        se = ols.bse["x"]

        coefs = fit.coefficients()
        assert coefs["x"] == pytest.approx(ols.params["x"], abs=3 * se)
        assert coefs["(Intercept)"] == pytest.approx(ols.params["const"], abs=0.3)

        lwr, upr = fit.confidence_interval("x")
        assert lwr < ols.params["x"] < upr
        # Intervals reflect a full-size sample, not a partition-size one.
        width = upr - lwr
        assert 0.6 * (2 * 1.96 * se) < width < 1.5 * (2 * 1.96 * se)

        assert fit.dispersion() == pytest.approx(np.sqrt(ols.scale), rel=0.15)

    def test_seed_reproducible(self, linear_spec):
        parts = _partitions(_make_linear_data())
        assert fit_model(linear_spec, parts, 20, random_state=7) == fit_model(
            linear_spec, parts, 20, random_state=7
        )

    def test_different_seeds_differ(self, linear_spec):
        parts = _partitions(_make_linear_data())
        a = fit_model(linear_spec, parts, 20, random_state=1)
        b = fit_model(linear_spec, parts, 20, random_state=2)
        assert a != b

    def test_frames_accepted_directly(self, linear_spec):
        df = _make_linear_data()
        fit = fit_model(linear_spec, [df.iloc[:300], df.iloc[300:]], 5, random_state=0)
        assert [s.label for s in fit.subsamples] == ["partition-0", "partition-1"]
        assert fit.n_true == 600

    def test_context_recorded(self, linear_spec):
        fit = fit_model(linear_spec, _partitions(_make_linear_data()), 5, random_state=3)
        ctx = fit.context
        assert ctx.family == "continuous"
        assert ctx.partition_sizes == [200, 200, 200]
        assert ctx.backend == "sequential"
        assert ctx.random_state == 3
        assert ctx.elapsed_seconds >= 0


# ------------------------------------------------------------------ #
# Executors
# ------------------------------------------------------------------ #


class TestExecutorEquivalence:
    @pytest.mark.parametrize("backend", ["threads", "processes"])
    def test_parallel_matches_sequential(self, linear_spec, backend):
        parts = _partitions(_make_linear_data(), m=4)
        seq = fit_model(linear_spec, parts, 30, random_state=11)
        par = fit_model(
            linear_spec, parts, 30, backend=backend, n_jobs=2, random_state=11
        )
        assert par.context.backend == backend
        assert seq == par

    def test_explicit_executor(self, linear_spec):
        parts = _partitions(_make_linear_data())
        fit = fit_model(linear_spec, parts, 5, executor=SequentialExecutor())
        assert fit.context.backend == "sequential"

    def test_rejects_non_executor(self, linear_spec):
        with pytest.raises(InvalidArgument, match="ExecutorProtocol"):
            fit_model(linear_spec, _partitions(_make_linear_data()), 5, executor=object())

    def test_parallel_error_propagates(self, linear_spec):
        df = _make_linear_data(n=100)
        flat = pd.DataFrame({"x": np.zeros(50), "y": np.arange(50.0)})
        with pytest.raises(SingularFit, match="partition-1"):
            fit_model(
                linear_spec, [df, flat], 5, backend="threads", n_jobs=2, random_state=0
            )


# ------------------------------------------------------------------ #
# Warnings & errors
# ------------------------------------------------------------------ #


class TestWarningsAndErrors:
    def test_small_n_true_warns(self, linear_spec):
        parts = _partitions(_make_linear_data())
        with pytest.warns(UserWarning, match="n_true=100"):
            fit = fit_model(linear_spec, parts, 5, n_true=100, random_state=0)
        assert fit.n_true == 100
        assert any("n_true=100" in w for w in fit.context.warnings_captured)

    def test_sequential_with_n_jobs_warns(self, linear_spec):
        parts = _partitions(_make_linear_data())
        with pytest.warns(UserWarning, match="ignored"):
            fit_model(linear_spec, parts, 5, backend="sequential", n_jobs=4)

    def test_no_partitions(self, linear_spec):
        with pytest.raises(InvalidArgument, match="At least one"):
            fit_model(linear_spec, [], 5)

    def test_empty_partition(self, linear_spec):
        empty = pd.DataFrame({"x": [], "y": []})
        with pytest.raises(InvalidArgument, match="empty"):
            fit_model(linear_spec, [_make_linear_data(), empty], 5)

    @pytest.mark.parametrize("n_boot", [0, -5, 2.5])
    def test_invalid_n_boot(self, linear_spec, n_boot):
        with pytest.raises(InvalidArgument):
            fit_model(linear_spec, _partitions(_make_linear_data()), n_boot)

    def test_invalid_n_true(self, linear_spec):
        with pytest.raises(InvalidArgument):
            fit_model(linear_spec, _partitions(_make_linear_data()), 5, n_true=0)

    def test_schema_mismatch(self):
        spec = ModelSpec("continuous", "y", ("x", "z"))
        with pytest.raises(SchemaMismatch, match="z"):
            fit_model(spec, _partitions(_make_linear_data()), 5)

    def test_missing_column_names_file(self, linear_spec, tmp_path):
        df = _make_linear_data()
        good = tmp_path / "a.csv"
        bad = tmp_path / "b.csv"
        df.iloc[:300].to_csv(good, index=False)
        df.iloc[300:].drop(columns="x").to_csv(bad, index=False)
        with pytest.raises(SchemaMismatch) as excinfo:
            fit_model(linear_spec, [str(good), str(bad)], 5, random_state=0)
        assert str(bad) in str(excinfo.value)
        assert excinfo.value.columns == ("x",)

    def test_singular_partition_is_named(self, linear_spec):
        good = _make_linear_data(n=100)
        flat = pd.DataFrame({"x": np.ones(40), "y": np.arange(40.0)})
        with pytest.raises(SingularFit) as excinfo:
            fit_model(linear_spec, [good, flat], 5, random_state=0)
        assert excinfo.value.partition == "partition-1"

    def test_family_mismatch(self, linear_spec):
        with pytest.raises(InvalidArgument, match="does not match"):
            fit_model(linear_spec, [_make_linear_data()], 5, family=LogisticFamily())


# ------------------------------------------------------------------ #
# Binary family
# ------------------------------------------------------------------ #


class TestBinaryFit:
    def test_fit_and_predict(self):
        df = _make_binary_data()
        spec = ModelSpec("binary", "y", ("x",))
        fit = fit_model(spec, _partitions(df), 20, random_state=0)
        coefs = fit.coefficients()
        assert coefs["x"] == pytest.approx(1.5, abs=0.6)
        lwr, upr = fit.confidence_interval("x")
        assert lwr < coefs["x"] < upr

        pred = fit.predict(pd.DataFrame({"x": [-2.0, 0.0, 2.0]}))
        assert np.all((pred > 0) & (pred < 1))
        assert pred[0] < pred[1] < pred[2]

    def test_threaded_fit_leaves_warning_filters_alone(self):
        df = _make_binary_data(n=1600)
        spec = ModelSpec("binary", "y", ("x",))
        before = list(warnings.filters)
        for seed in range(3):
            fit_model(
                spec,
                split_data(df, 16, random_state=seed),
                5,
                backend="threads",
                n_jobs=8,
                random_state=seed,
            )
        assert list(warnings.filters) == before

    def test_iteration_budget(self):
        df = _make_binary_data()
        with pytest.raises(NonConvergence):
            blb_regression(df, "y ~ x", family="binary", m=2, n_boot=3, max_iter=1)

    def test_non_binary_response(self):
        df = _make_linear_data()
        with pytest.raises(InvalidArgument, match=r"\{0, 1\}"):
            blb_regression(df, "y ~ x", family="binary", m=2, n_boot=3)


# ------------------------------------------------------------------ #
# blb_regression front door
# ------------------------------------------------------------------ #


class TestBlbRegression:
    def test_formula_with_split(self):
        fit = blb_regression(
            _make_linear_data(), "y ~ x", m=4, n_boot=10, random_state=0
        )
        assert fit.n_partitions == 4
        assert fit.spec == ModelSpec("continuous", "y", ("x",))
        assert fit.n_true == 600

    def test_model_spec_input(self, linear_spec):
        fit = blb_regression(
            _make_linear_data(), linear_spec, m=2, n_boot=5, random_state=0
        )
        assert fit.spec is linear_spec

    def test_split_reproducible(self):
        df = _make_linear_data()
        a = blb_regression(df, "y ~ x", m=3, n_boot=5, random_state=4)
        b = blb_regression(df, "y ~ x", m=3, n_boot=5, random_state=4)
        assert a == b

    def test_file_paths(self, tmp_path):
        df = _make_linear_data()
        paths = []
        for i in range(3):
            path = tmp_path / f"chunk{i}.csv"
            df.iloc[i * 200 : (i + 1) * 200].to_csv(path, index=False)
            paths.append(str(path))
        fit = blb_regression(paths, "y ~ x", n_boot=5, random_state=0)
        assert [s.label for s in fit.subsamples] == paths
        assert fit.n_true == 600

    def test_list_of_frames(self):
        df = _make_linear_data()
        fit = blb_regression([df.iloc[:250], df.iloc[250:]], "y ~ x", n_boot=5)
        assert fit.n_partitions == 2

    def test_no_intercept_formula(self):
        fit = blb_regression(_make_linear_data(), "y ~ x - 1", m=2, n_boot=5)
        assert fit.coef_names == ("x",)


class TestEndToEnd:
    def test_three_partitions_full_b(self):
        df = _make_linear_data()
        fit = fit_model(
            ModelSpec.from_formula("y ~ x"), _partitions(df), 2000, random_state=0
        )
        assert set(fit.coefficients()) == {"(Intercept)", "x"}

        ci = fit.confidence_interval("x")
        assert isinstance(ci, tuple)
        assert len(ci) == 2
        assert ci[0] <= ci[1]

        out = fit.predict(pd.DataFrame({"x": [-1.0, 0.0, 1.0]}), confidence=True)
        assert np.all(out["lwr"] <= out["fit"])
        assert np.all(out["fit"] <= out["upr"])
