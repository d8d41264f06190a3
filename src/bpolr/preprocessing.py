"""
Preprocessing of the response and design matrix.

This module turns user inputs into the quantities the engine expects:

    - the response factor is encoded as 1-based integer codes together with
      its level names,
    - the predictors are centred and replaced by the orthogonal factor of
      their thin QR decomposition, which decorrelates them and makes the
      posterior geometry easier for the sampler, and
    - the scalar/vector inputs attached to priors, weights, offsets and the
      scobit link are validated and normalized.

The inverse of the upper-triangular factor is kept so that coefficients
estimated on the orthogonal scale can be mapped back afterwards.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union
import logging
import numbers
import warnings

import numpy as np
import pandas as pd

from .config.enums import Algorithm, Link
from .priors import DirichletPrior, R2Prior, broadcast_concentration, make_eta

logger = logging.getLogger(__name__)

INTERCEPT_NAME = "(Intercept)"

# ==============================================================================
# Response
# ==============================================================================


def encode_response(
    y: Union[pd.Categorical, pd.Series]
) -> Tuple[List[str], int, np.ndarray]:
    """Encode a categorical response.

    Parameters
    ----------
    y : Union[pd.Categorical, pd.Series]
        Response variable. Must be categorical, preferably ordered. All
        categories count as outcome levels, including unobserved ones.

    Returns
    -------
    Tuple[List[str], int, np.ndarray]
        Level names, number of levels ``J`` and the 1-based integer codes.

    Raises
    ------
    ValueError
        If ``y`` is not categorical, contains missing values, or has fewer
        than two levels.
    """
    if isinstance(y, pd.Series) and isinstance(y.dtype, pd.CategoricalDtype):
        y = y.array
    if not isinstance(y, pd.Categorical):
        raise ValueError(
            "'y' must be a categorical (pandas.Categorical or a Series of "
            f"categorical dtype), got {type(y).__name__}"
        )
    if not y.ordered:
        warnings.warn(
            "'y' is an unordered categorical; its categories are taken as "
            "ordered as listed.",
            UserWarning,
            stacklevel=3,
        )

    codes = np.asarray(y.codes)
    if np.any(codes < 0):
        raise ValueError("'y' must not contain missing values")

    y_lev = [str(level) for level in y.categories]
    J = len(y_lev)
    if J < 2:
        raise ValueError(
            f"'y' must have at least 2 outcome categories, got {J}"
        )
    return y_lev, J, codes.astype(np.int32) + 1


# ==============================================================================
# Design Matrix
# ==============================================================================


def as_design_matrix(x) -> Tuple[np.ndarray, List[str]]:
    """Coerce ``x`` to a float matrix and drop a leading intercept column.

    Column names are taken from a DataFrame; plain arrays get ``x1..xK``.
    """
    if isinstance(x, pd.DataFrame):
        names = [str(c) for c in x.columns]
        values = x.to_numpy(dtype=float)
    else:
        values = np.asarray(x, dtype=float)
        if values.ndim == 1:
            values = values[:, None]
        names = [f"x{k + 1}" for k in range(values.shape[1])]

    if values.ndim != 2:
        raise ValueError(f"'x' must be 2-dimensional, got {values.ndim} dims")
    if not np.all(np.isfinite(values)):
        raise ValueError("'x' must not contain missing or infinite values")

    if names and names[0] == INTERCEPT_NAME:
        values = values[:, 1:]
        names = names[1:]
    return values, names


# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class QRDesign:
    """Centred, orthogonalized design and the quantities to undo it.

    Attributes
    ----------
    Q : np.ndarray
        Orthogonal factor of the centred design, shape ``(N, K)``.
    R_inv : np.ndarray
        Inverse of the upper-triangular factor, shape ``(K, K)``. Maps
        coefficients on the ``Q`` scale back to the original scale.
    xbar : np.ndarray
        Column means of the original design, shape ``(K,)``.
    xbar_transformed : np.ndarray
        ``xbar @ R_inv``, the centre expressed on the ``Q`` scale.
    column_names : List[str]
        Predictor names, carried over to ``Q``.
    """

    Q: np.ndarray
    R_inv: np.ndarray
    xbar: np.ndarray
    xbar_transformed: np.ndarray
    column_names: List[str]

    @property
    def N(self) -> int:
        return self.Q.shape[0]

    @property
    def K(self) -> int:
        return self.Q.shape[1]


def qr_decorrelate(
    x: np.ndarray, column_names: Optional[Sequence[str]] = None
) -> QRDesign:
    """Centre ``x`` and replace it by the orthogonal factor of its QR.

    With ``Xc = x - xbar = Q R`` the linear predictor ``Xc @ beta`` equals
    ``Q @ theta`` for ``theta = R @ beta``, so ``beta = R_inv @ theta``.

    Raises
    ------
    ValueError
        If the centred design is rank deficient.
    """
    x = np.asarray(x, dtype=float)
    N, K = x.shape
    names = list(column_names) if column_names is not None else [
        f"x{k + 1}" for k in range(K)
    ]

    xbar = x.mean(axis=0) if N > 0 else np.zeros(K)
    if K == 0:
        empty = np.zeros((0, 0))
        return QRDesign(
            Q=np.zeros((N, 0)),
            R_inv=empty,
            xbar=xbar,
            xbar_transformed=np.zeros(0),
            column_names=names,
        )

    logger.debug("QR decorrelation of a %d x %d design", N, K)
    X = x - xbar
    Q, R = np.linalg.qr(X, mode="reduced")

    diag = np.abs(np.diag(R))
    tol = max(N, K) * np.finfo(float).eps * (diag.max() if diag.size else 0.0)
    if R.shape[0] < K or diag.size < K or np.any(diag <= tol):
        raise ValueError(
            "The centred design matrix is rank deficient; remove "
            "collinear or constant columns from 'x'."
        )

    # Solve R @ R_inv = Q.T @ Q (= I) rather than inverting R directly
    R_inv = np.linalg.solve(R, Q.T @ Q)
    return QRDesign(
        Q=Q,
        R_inv=R_inv,
        xbar=xbar,
        xbar_transformed=np.atleast_1d(xbar @ R_inv),
        column_names=names,
    )


# ==============================================================================
# Weights and Offsets
# ==============================================================================


def _optional_vector(
    values, N: int, name: str, neutral: float
) -> Tuple[bool, np.ndarray]:
    """Return ``(has_values, values)`` treating all-``neutral`` as absent."""
    if values is None:
        return False, np.zeros(0)
    values = np.atleast_1d(np.asarray(values, dtype=float))
    present = values.size > 0 and not np.all(values == neutral)
    if not present:
        return False, np.zeros(0)
    if values.shape != (N,):
        raise ValueError(
            f"'{name}' must have one value per observation ({N}), got "
            f"shape {values.shape}"
        )
    if not np.all(np.isfinite(values)):
        raise ValueError(f"'{name}' must not contain missing values")
    return True, values


def prepare_weights(wt, N: int) -> Tuple[bool, np.ndarray]:
    """Observation weights; absent when empty or all equal to one."""
    has_weights, weights = _optional_vector(wt, N, "wt", neutral=1.0)
    if has_weights and np.any(weights < 0):
        raise ValueError("'wt' must be non-negative")
    return has_weights, weights


def prepare_offset(offset, N: int) -> Tuple[bool, np.ndarray]:
    """Offsets; absent when empty or all equal to zero."""
    return _optional_vector(offset, N, "offset", neutral=0.0)


# ==============================================================================
# Priors and Link Options
# ==============================================================================


def prepare_prior(prior: Optional[R2Prior], K: int) -> Tuple[int, float]:
    """Return ``(prior_dist, regularization)`` for the coefficient prior."""
    if prior is None:
        return 0, 0.0
    if not isinstance(prior, R2Prior):
        raise ValueError(
            f"'prior' must be an R2 prior or None, got {type(prior).__name__}"
        )
    return 1, float(make_eta(prior.location, prior.what, K=K))


def prepare_prior_counts(
    prior_counts: Optional[DirichletPrior], J: int
) -> np.ndarray:
    """Dirichlet concentration vector with one value per category."""
    if prior_counts is None:
        return np.ones(J)
    if not isinstance(prior_counts, DirichletPrior):
        raise ValueError(
            "'prior_counts' must be a Dirichlet prior or None, got "
            f"{type(prior_counts).__name__}"
        )
    return broadcast_concentration(prior_counts.concentration, J)


def _scobit_parameter(value, J: int, name: str) -> float:
    if value is None:
        return 0.0
    if J > 2:
        raise ValueError(
            f"'{name}' must be None when there are more than 2 outcome "
            "categories."
        )
    if (
        isinstance(value, bool)
        or not isinstance(value, numbers.Real)
        or not value > 0
    ):
        raise ValueError(f"'{name}' must be positive")
    return float(value)


def prepare_scobit(
    shape: Optional[float], rate: Optional[float], J: int, link: Link
) -> Tuple[float, float, bool]:
    """Validate the Gamma prior of the scobit exponent.

    Returns
    -------
    Tuple[float, float, bool]
        ``shape`` and ``rate`` (0 when not given) and whether the model is
        skewed, i.e. both are positive.

    Raises
    ------
    ValueError
        If either is given with more than two categories, is not a positive
        number, or a skewed model is requested with a non-logistic link.
    """
    shape = _scobit_parameter(shape, J, "shape")
    rate = _scobit_parameter(rate, J, "rate")
    is_skewed = shape > 0 and rate > 0
    if is_skewed and Link(link) != Link.LOGISTIC:
        raise ValueError(
            "Skewed models are only supported when method = 'logistic'."
        )
    return shape, rate, is_skewed


# ------------------------------------------------------------------------------


def resolve_do_residuals(
    do_residuals: Optional[bool], algorithm: Algorithm, J: int, prior_PD: bool
) -> bool:
    """Whether the engine should compute residuals.

    Residuals default to on for sampling only, and are never computed for
    binary outcomes or prior predictive runs.
    """
    if do_residuals is None:
        do_residuals = Algorithm(algorithm) == Algorithm.SAMPLING
    if not do_residuals:
        return False
    return J > 2 and not prior_PD
