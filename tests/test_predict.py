"""Tests for response-scale predictions."""

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit

from little_bootstraps._results import FittedModel, SubsampleEstimate
from little_bootstraps.exceptions import SchemaMismatch
from little_bootstraps.spec import ModelSpec

NAMES = ("(Intercept)", "x")


def _make_model(family="continuous", seed=0, m=2, b=150):
    rng = np.random.default_rng(seed)
    subs = []
    for i in range(m):
        coefs = np.column_stack(
            [rng.normal(0.5, 0.3, size=b), rng.normal(1.5 + 0.2 * i, 0.4, size=b)]
        )
        disp = np.abs(rng.normal(1.0, 0.1, size=b)) if family == "continuous" else None
        subs.append(SubsampleEstimate(f"part-{i}", NAMES, coefs, disp))
    return FittedModel(ModelSpec(family, "y", ("x",)), tuple(subs), 500, b)


@pytest.fixture()
def new_rows():
    return pd.DataFrame({"x": [-2.0, 0.0, 1.0, 3.0]}, index=[10, 11, 12, 13])


class TestContinuousPredict:
    def test_point_is_linear_in_coefficients(self, new_rows):
        model = _make_model()
        coefs = model.coefficients()
        expected = coefs["(Intercept)"] + coefs["x"] * new_rows["x"].to_numpy()
        np.testing.assert_allclose(model.predict(new_rows), expected)

    def test_returns_array(self, new_rows):
        pred = _make_model().predict(new_rows)
        assert isinstance(pred, np.ndarray)
        assert pred.shape == (4,)

    def test_confidence_frame(self, new_rows):
        out = _make_model().predict(new_rows, confidence=True)
        assert list(out.columns) == ["fit", "lwr", "upr"]
        assert list(out.index) == [10, 11, 12, 13]
        assert np.all(out["lwr"] <= out["fit"])
        assert np.all(out["fit"] <= out["upr"])

    def test_fit_matches_point_prediction(self, new_rows):
        model = _make_model()
        out = model.predict(new_rows, confidence=True)
        np.testing.assert_allclose(out["fit"], model.predict(new_rows))

    def test_wider_level_wider_band(self, new_rows):
        model = _make_model()
        narrow = model.predict(new_rows, confidence=True, level=0.5)
        wide = model.predict(new_rows, confidence=True, level=0.99)
        assert np.all(wide["upr"] - wide["lwr"] >= narrow["upr"] - narrow["lwr"])

    def test_response_column_not_needed(self):
        _make_model().predict(pd.DataFrame({"x": [1.0]}))

    def test_mapping_input(self):
        pred = _make_model().predict({"x": 1.0})
        assert pred.shape == (1,)

    def test_missing_predictor(self):
        with pytest.raises(SchemaMismatch, match="x"):
            _make_model().predict(pd.DataFrame({"z": [1.0]}))


class TestBinaryPredict:
    def test_point_is_mean_probability(self, new_rows):
        model = _make_model("binary")
        X = np.column_stack([np.ones(4), new_rows["x"].to_numpy()])
        expected = np.mean(
            [expit(s.coefs @ X.T).mean(axis=0) for s in model.subsamples], axis=0
        )
        np.testing.assert_allclose(model.predict(new_rows), expected)

    def test_point_matches_interval_fit(self, new_rows):
        model = _make_model("binary")
        out = model.predict(new_rows, confidence=True)
        np.testing.assert_allclose(out["fit"], model.predict(new_rows))

    def test_probabilities_in_unit_interval(self, new_rows):
        model = _make_model("binary")
        pred = model.predict(new_rows)
        assert np.all((pred >= 0) & (pred <= 1))
        out = model.predict(new_rows, confidence=True)
        for col in ("fit", "lwr", "upr"):
            assert out[col].between(0, 1).all()

    def test_bounds_ordered(self, new_rows):
        out = _make_model("binary").predict(new_rows, confidence=True)
        assert np.all(out["lwr"] <= out["fit"])
        assert np.all(out["fit"] <= out["upr"])

    def test_interval_is_mean_of_partition_quantiles(self, new_rows):
        model = _make_model("binary")
        X = np.column_stack([np.ones(4), new_rows["x"].to_numpy()])
        per_part = [
            np.quantile(expit(s.coefs @ X.T), [0.025, 0.975], axis=0)
            for s in model.subsamples
        ]
        expected = np.mean(per_part, axis=0)
        out = model.predict(new_rows, confidence=True)
        np.testing.assert_allclose(out["lwr"], expected[0])
        np.testing.assert_allclose(out["upr"], expected[1])
