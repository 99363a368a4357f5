"""Tests for the error taxonomy."""

import pickle

import pytest

from little_bootstraps.exceptions import (
    BLBError,
    FitError,
    InvalidArgument,
    NonConvergence,
    SchemaMismatch,
    SingularFit,
    UnknownTerm,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls,builtin",
        [
            (InvalidArgument, ValueError),
            (SchemaMismatch, ValueError),
            (UnknownTerm, KeyError),
            (SingularFit, RuntimeError),
            (NonConvergence, RuntimeError),
        ],
    )
    def test_builtin_bases(self, cls, builtin):
        assert issubclass(cls, BLBError)
        assert issubclass(cls, builtin)

    def test_fit_errors(self):
        assert issubclass(SingularFit, FitError)
        assert issubclass(NonConvergence, FitError)


class TestMessages:
    def test_unknown_term(self):
        err = UnknownTerm("z", ("(Intercept)", "x"))
        assert str(err) == "Unknown term 'z'.  Model terms: '(Intercept)', 'x'."

    def test_fit_error_without_location(self):
        assert str(SingularFit("rank deficient")) == "rank deficient"

    def test_with_location(self):
        err = NonConvergence("no convergence").with_location("p1", 4)
        assert isinstance(err, NonConvergence)
        assert err.partition == "p1"
        assert err.replicate == 4
        assert str(err) == "no convergence (partition 'p1', replicate 4)"

    def test_schema_mismatch_columns(self):
        err = SchemaMismatch("missing", ["a", "b"])
        assert err.columns == ("a", "b")


class TestPickle:
    @pytest.mark.parametrize(
        "err",
        [
            InvalidArgument("bad n_boot"),
            SchemaMismatch("missing", ("a",)),
            UnknownTerm("z", ("x",)),
            SingularFit("rank", partition="p", replicate=2),
            NonConvergence("iter"),
        ],
    )
    def test_roundtrip(self, err):
        clone = pickle.loads(pickle.dumps(err))
        assert type(clone) is type(err)
        assert str(clone) == str(err)
        for attr in ("columns", "term", "available", "partition", "replicate"):
            if hasattr(err, attr):
                assert getattr(clone, attr) == getattr(err, attr)
