"""little_bootstraps — Bag of Little Bootstraps for regression models.

Estimates the sampling variability of linear and logistic regression
coefficients, dispersion and predictions on data too large to
bootstrap directly: the data are split into partitions, each partition
is resampled B times by multinomial reweighting to the full data size,
a weighted model is fitted per replicate, and the replicate statistics
are reduced within and then across partitions.

Public API:
    .. autosummary::
        blb_regression
        fit_model
        ModelSpec
        build_design
        FittedModel
        SubsampleEstimate
        BootstrapReplicate
        SubsampleEstimator
        draw_weights
        spawn_generators
        reduce_replicates
        reduce_partitions
        Partition
        load_partition
        load_partitions
        split_data
        print_blb_summary
        get_backend
        set_backend
        resolve_executor
        ExecutorProtocol
        ModelFamily
        LinearFamily
        LogisticFamily
        resolve_family
        register_family
        FitContext
        BLBError
        InvalidArgument
        SingularFit
        NonConvergence
        SchemaMismatch
        UnknownTerm
"""

from ._backends import ExecutorProtocol, resolve_executor
from ._config import get_backend, set_backend
from ._context import FitContext
from ._results import BootstrapReplicate, FittedModel, SubsampleEstimate
from .aggregation import reduce_partitions, reduce_replicates
from .core import blb_regression, fit_model
from .data import Partition, load_partition, load_partitions, split_data
from .display import print_blb_summary
from .engine import SubsampleEstimator
from .exceptions import (
    BLBError,
    FitError,
    InvalidArgument,
    NonConvergence,
    SchemaMismatch,
    SingularFit,
    UnknownTerm,
)
from .families import (
    LinearFamily,
    LogisticFamily,
    ModelFamily,
    register_family,
    resolve_family,
)
from .resampling import draw_weights, spawn_generators
from .spec import ModelSpec, build_design

__all__ = [
    "blb_regression",
    "fit_model",
    "ModelSpec",
    "build_design",
    "FittedModel",
    "SubsampleEstimate",
    "BootstrapReplicate",
    "SubsampleEstimator",
    "draw_weights",
    "spawn_generators",
    "reduce_replicates",
    "reduce_partitions",
    "Partition",
    "load_partition",
    "load_partitions",
    "split_data",
    "print_blb_summary",
    "get_backend",
    "set_backend",
    "resolve_executor",
    "ExecutorProtocol",
    "ModelFamily",
    "LinearFamily",
    "LogisticFamily",
    "resolve_family",
    "register_family",
    "FitContext",
    "BLBError",
    "FitError",
    "InvalidArgument",
    "SingularFit",
    "NonConvergence",
    "SchemaMismatch",
    "UnknownTerm",
]

__version__ = "0.1.0"
