"""
Flat data record handed to the engine.

``PolrData`` gathers everything the model program needs in a single
immutable record: dimensions, the orthogonalized design, the encoded
response, weights and offsets, prior hyperparameters and link options. The
record carries no behaviour beyond conversion to keyword arguments for the
model.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List

import numpy as np
import jax.numpy as jnp

# ==============================================================================
# PolrData
# ==============================================================================


@dataclass(frozen=True)
class PolrData:
    """Data record for the proportional-odds model program.

    Attributes
    ----------
    J : int
        Number of outcome categories.
    N : int
        Number of observations.
    K : int
        Number of predictors (intercept excluded).
    X : np.ndarray
        Orthogonal design, shape ``(N, K)``.
    xbar : np.ndarray
        Predictor means on the orthogonal scale, shape ``(K,)``.
    y : np.ndarray
        1-based outcome codes, shape ``(N,)``.
    prior_PD : bool
        Draw from the prior predictive distribution (skip the likelihood).
    link : int
        Link code (1 logistic, 2 probit, 3 loglog, 4 cloglog, 5 cauchit).
    has_weights, weights
        Observation weights; ``weights`` is empty when absent.
    has_offset, offset_
        Offsets of the linear predictor; ``offset_`` is empty when absent.
    prior_dist : int
        1 for an R2 prior on the coefficients, 0 for a flat prior.
    regularization : float
        Second shape parameter of the Beta prior on R2.
    prior_counts : np.ndarray
        Dirichlet concentration on the category proportions, shape ``(J,)``.
    is_skewed : bool
        Use the scobit link (binary outcomes only).
    shape, rate : float
        Gamma prior of the scobit exponent (0 when unused).
    do_residuals : bool
        Compute per-observation residuals.
    """

    J: int
    N: int
    K: int
    X: np.ndarray
    xbar: np.ndarray
    y: np.ndarray
    prior_PD: bool
    link: int
    has_weights: bool
    weights: np.ndarray
    has_offset: bool
    offset_: np.ndarray
    prior_dist: int
    regularization: float
    prior_counts: np.ndarray
    is_skewed: bool
    shape: float
    rate: float
    do_residuals: bool = False

    def __post_init__(self):
        if self.X.shape != (self.N, self.K):
            raise ValueError(
                f"X must have shape ({self.N}, {self.K}), got {self.X.shape}"
            )
        if self.y.shape != (self.N,):
            raise ValueError(
                f"y must have shape ({self.N},), got {self.y.shape}"
            )
        if self.prior_counts.shape != (self.J,):
            raise ValueError(
                f"prior_counts must have shape ({self.J},), got "
                f"{self.prior_counts.shape}"
            )

    # --------------------------------------------------------------------------

    def as_dict(self) -> Dict[str, Any]:
        """Plain dictionary view of the record."""
        return asdict(self)

    # --------------------------------------------------------------------------

    def model_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for the model program.

        Arrays are converted to JAX arrays; integers and flags stay Python
        scalars because the model branches on them at trace time.
        """
        return {
            "J": self.J,
            "N": self.N,
            "K": self.K,
            "X": jnp.asarray(self.X),
            "xbar": jnp.asarray(self.xbar),
            "y": jnp.asarray(self.y),
            "prior_PD": bool(self.prior_PD),
            "link": int(self.link),
            "weights": jnp.asarray(self.weights) if self.has_weights else None,
            "offset": jnp.asarray(self.offset_) if self.has_offset else None,
            "prior_dist": int(self.prior_dist),
            "regularization": float(self.regularization),
            "prior_counts": jnp.asarray(self.prior_counts),
            "is_skewed": bool(self.is_skewed),
            "shape": float(self.shape),
            "rate": float(self.rate),
            "do_residuals": bool(self.do_residuals),
        }


# ==============================================================================
# Parameter Selection
# ==============================================================================


def output_parameters(J: int, is_skewed: bool) -> List[str]:
    """Model sites reported by a fit, in output order.

    Multi-category fits report coefficients first, then cutpoints; binary
    fits report the intercept first.
    """
    if J > 2:
        return ["beta", "zeta", "mean_PPD"]
    return ["zeta", "beta"] + (["alpha"] if is_skewed else []) + ["mean_PPD"]
