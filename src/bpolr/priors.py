"""
Prior specifications for proportional-odds models.

Two priors are involved in a fit:

    - an R2 prior on the proportion of variance in the latent outcome that is
      explained by the predictors, which regularizes the coefficients
      jointly, and
    - a Dirichlet prior on the outcome-category proportions, which induces a
      prior on the cutpoints.

An R2 prior is specified by a single ``location`` together with the summary
statistic it refers to (``what``). The engine needs the second shape
parameter of a Beta(K/2, eta) prior on R2, which ``make_eta`` calibrates from
that location.
"""

from typing import Any, Dict, Optional, Sequence, Tuple, Union
import math

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from scipy import optimize, special, stats

from .config.enums import PriorFamily

# ==============================================================================
# Prior Configuration Models
# ==============================================================================

_R2_SUMMARIES = ("mode", "mean", "median", "log")


class R2Prior(BaseModel):
    """R2 prior on the regression coefficients."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    location: float = Field(..., description="Prior location of R2")
    what: str = Field("mode", description="Summary the location refers to")

    @field_validator("what")
    @classmethod
    def validate_what(cls, v: str) -> str:
        """Validate the summary statistic name."""
        if v not in _R2_SUMMARIES:
            raise ValueError(
                f"Invalid 'what': {v}. Must be one of {list(_R2_SUMMARIES)}"
            )
        return v

    @model_validator(mode="after")
    def validate_location(self) -> "R2Prior":
        """Validate the location against the summary statistic."""
        if not math.isfinite(self.location):
            raise ValueError("'location' must be finite")
        if self.what == "log":
            if self.location >= 0:
                raise ValueError(
                    "'location' must be negative when what = 'log'"
                )
        elif self.what == "mode":
            if not 0 < self.location <= 1:
                raise ValueError(
                    "'location' must be in (0, 1] when what = 'mode'"
                )
        elif not 0 < self.location < 1:
            raise ValueError(
                f"'location' must be in (0, 1) when what = '{self.what}'"
            )
        return self

    @property
    def dist(self) -> str:
        return PriorFamily.R2.value


# ------------------------------------------------------------------------------


class DirichletPrior(BaseModel):
    """Dirichlet prior on the outcome-category proportions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    concentration: Union[float, Tuple[float, ...]] = Field(
        1.0, description="Concentration (scalar or one value per category)"
    )

    @field_validator("concentration")
    @classmethod
    def validate_concentration(cls, v):
        """Validate that concentration values are positive."""
        values = v if isinstance(v, tuple) else (v,)
        if not values:
            raise ValueError("Concentration must have at least one value")
        if any(not x > 0 for x in values):
            raise ValueError(
                f"Concentration parameters must be positive, got {v}"
            )
        return v

    @property
    def dist(self) -> str:
        return PriorFamily.DIRICHLET.value


# ==============================================================================
# Prior Constructors
# ==============================================================================


def R2(location: float, what: str = "mode") -> R2Prior:
    """R2 prior on the coefficients.

    Parameters
    ----------
    location : float
        Prior location of R2. In (0, 1] for ``what="mode"``, in (0, 1) for
        ``"mean"`` and ``"median"``, and negative for ``"log"`` (the prior
        expectation of log(R2)).
    what : str, default="mode"
        Which summary of the prior ``location`` refers to: ``"mode"``,
        ``"mean"``, ``"median"`` or ``"log"``.

    Returns
    -------
    R2Prior
        Validated prior specification.

    Examples
    --------
    >>> prior = R2(0.25, what="mean")
    >>> prior.location, prior.what
    (0.25, 'mean')
    """
    return R2Prior(location=location, what=what)


def dirichlet(concentration: Union[float, Sequence[float]] = 1.0) -> DirichletPrior:
    """Dirichlet prior on the outcome-category proportions.

    A scalar is recycled to every category; a sequence must have one value
    per outcome category.
    """
    if not np.isscalar(concentration):
        concentration = tuple(float(c) for c in concentration)
    return DirichletPrior(concentration=concentration)


# ==============================================================================
# Prior Calibration
# ==============================================================================


_INT_MAX = float(np.iinfo(np.int32).max)


def _qexp(p: float) -> float:
    """Quantile function of the unit-rate exponential distribution."""
    if p >= 1:
        return math.inf
    return -math.log1p(-p)


def make_eta(location: float, what: str, K: int) -> float:
    """Second shape parameter of the Beta(K/2, eta) prior on R2.

    Parameters
    ----------
    location : float
        Prior location of R2 (see :func:`R2`).
    what : str
        Summary the location refers to: ``"mode"``, ``"mean"``, ``"median"``
        or ``"log"``.
    K : int
        Number of predictors (excluding the intercept).

    Returns
    -------
    float
        The calibrated ``eta``.

    Raises
    ------
    ValueError
        If there are no predictors, if the location is outside the valid
        range for ``what``, or if the mode is requested with two or fewer
        predictors (the Beta prior has no interior mode then).
    """
    if K != int(K):
        raise ValueError(f"K must be an integer, got {K}")
    K = int(K)
    if K == 0:
        raise ValueError(
            "R2 prior is not applicable when there are no covariates."
        )
    if what not in _R2_SUMMARIES:
        raise ValueError(
            f"Invalid 'what': {what}. Must be one of {list(_R2_SUMMARIES)}"
        )
    half_K = K / 2

    if what == "mode":
        if not 0 < location <= 1:
            raise ValueError("'location' must be in (0, 1] when what = 'mode'")
        if K <= 2:
            raise ValueError(
                f"R2 has no mode when there are {K} predictors."
            )
        return (half_K - 1 - location * half_K + location * 2) / location

    if what == "mean":
        if not 0 < location < 1:
            raise ValueError("'location' must be in (0, 1) when what = 'mean'")
        return (half_K - location * half_K) / location

    if what == "median":
        if not 0 < location < 1:
            raise ValueError(
                "'location' must be in (0, 1) when what = 'median'"
            )

        def objective(p):
            # The median of Beta(K/2, eta) is 1 at eta = 0 and 0 as eta -> inf
            if p <= 0:
                return 1.0 - location
            if p >= 1:
                return -location
            return stats.beta.ppf(0.5, half_K, _qexp(p)) - location

        return _qexp(optimize.brentq(objective, 0.0, 1.0))

    # what == "log"
    if not location < 0:
        raise ValueError("'location' must be negative when what = 'log'")

    def objective(p):
        if p <= 0:
            return -location
        if p >= 1:
            return -_INT_MAX
        return (
            special.digamma(half_K)
            - special.digamma(half_K + _qexp(p))
            - location
        )

    return _qexp(optimize.brentq(objective, 0.0, 1.0))


# ------------------------------------------------------------------------------


def broadcast_concentration(
    concentration: Union[float, Sequence[float], None], J: int
) -> np.ndarray:
    """Recycle a Dirichlet concentration to one value per category."""
    values = np.atleast_1d(
        np.asarray(concentration if concentration is not None else [], dtype=float)
    )
    if values.size == 0:
        return np.zeros(J)
    if values.size == 1:
        return np.full(J, values[0])
    if values.size != J:
        raise ValueError(
            f"Concentration must have length 1 or {J} (one per outcome "
            f"category), got {values.size}"
        )
    return values


# ==============================================================================
# Prior Summary
# ==============================================================================


def summarize_polr_prior(
    prior: Optional[R2Prior],
    prior_counts: np.ndarray,
    shape: Optional[float] = None,
    rate: Optional[float] = None,
) -> Dict[str, Any]:
    """Record of the priors used by a fit.

    Parameters
    ----------
    prior : Optional[R2Prior]
        The R2 prior, or ``None`` for a flat prior.
    prior_counts : np.ndarray
        The concentration vector actually used (one value per category).
    shape, rate : Optional[float]
        Gamma prior on the scobit exponent. Only reported when both are
        positive.

    Returns
    -------
    Dict[str, Any]
        Nested record with ``prior``, ``prior_counts`` and, for skewed
        models, ``scobit_exponent``.
    """
    flat = prior is None
    prior_list = {
        "prior": {
            "dist": None if flat else prior.dist,
            "location": None if flat else prior.location,
            "what": None if flat else prior.what,
        },
        "prior_counts": {
            "dist": PriorFamily.DIRICHLET.value,
            "concentration": np.asarray(prior_counts, dtype=float),
        },
    }
    if shape is not None and shape > 0 and rate is not None and rate > 0:
        prior_list["scobit_exponent"] = {
            "dist": PriorFamily.GAMMA.value,
            "shape": shape,
            "rate": rate,
        }
    return prior_list
