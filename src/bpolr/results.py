"""
Results class for proportional-odds fits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from numpyro.diagnostics import effective_sample_size, split_gelman_rubin

from .config.enums import Algorithm, Link
from .data import PolrData
from .postprocessing import LOG_POSTERIOR_NAME, cutpoint_names

# ------------------------------------------------------------------------------
# PolrFit
# ------------------------------------------------------------------------------


@dataclass
class PolrFit:
    """
    Fitted proportional-odds model.

    Draws are reported on the scale of the original predictors and labelled
    with predictor and outcome level names. Variational fits are stored as a
    single chain of draws from the approximation.

    Attributes
    ----------
    draws : Dict[str, np.ndarray]
        Ordered mapping from output name to draws of shape
        ``(chains, draws)``.
    algorithm : Algorithm
        Estimation algorithm used.
    link : Link
        Link function.
    y_levels : List[str]
        Outcome level names, in order.
    x_names : List[str]
        Predictor names (intercept excluded).
    R_inv : np.ndarray
        Inverse triangular QR factor used to untransform coefficients.
    data : PolrData
        Data record handed to the engine.
    prior_info : Dict[str, Any]
        Priors used by the fit (see ``prior_summary``).
    raw : Any
        Engine object (``numpyro.infer.MCMC`` or ``VIRunResult``).
    losses : Optional[np.ndarray]
        Loss history of a variational fit.
    residuals : Optional[np.ndarray]
        Per-observation residual draws, shape ``(chains, draws, N)``, when
        computed.
    divergences : Optional[int]
        Number of divergent transitions after warmup (sampling only).
    converged : Optional[bool]
        Whether the variational optimization converged.
    """

    draws: Dict[str, np.ndarray] = field(repr=False)
    algorithm: Algorithm
    link: Link
    y_levels: List[str]
    x_names: List[str]
    R_inv: np.ndarray = field(repr=False)
    data: PolrData = field(repr=False)
    prior_info: Dict[str, Any] = field(repr=False)
    raw: Any = field(default=None, repr=False)
    losses: Optional[np.ndarray] = field(default=None, repr=False)
    residuals: Optional[np.ndarray] = field(default=None, repr=False)
    divergences: Optional[int] = None
    converged: Optional[bool] = None

    def __getstate__(self):
        # Engine objects hold compiled functions and are not pickled
        state = self.__dict__.copy()
        state["raw"] = None
        return state

    # --------------------------------------------------------------------------
    # Dimensions
    # --------------------------------------------------------------------------

    @property
    def names(self) -> List[str]:
        """Output names, in order."""
        return list(self.draws)

    @property
    def n_chains(self) -> int:
        return next(iter(self.draws.values())).shape[0]

    @property
    def n_draws(self) -> int:
        return next(iter(self.draws.values())).shape[1]

    # --------------------------------------------------------------------------
    # Point Summaries
    # --------------------------------------------------------------------------

    def _medians(self, names: Sequence[str]) -> pd.Series:
        return pd.Series(
            {name: float(np.median(self.draws[name])) for name in names},
            dtype=float,
        )

    @property
    def coefficients(self) -> pd.Series:
        """Posterior medians of the predictor coefficients."""
        return self._medians(self.x_names)

    @property
    def cutpoints(self) -> pd.Series:
        """Posterior medians of the cutpoints (the intercept when binary)."""
        return self._medians(cutpoint_names(self.y_levels))

    # --------------------------------------------------------------------------
    # Tabular Views
    # --------------------------------------------------------------------------

    def to_dataframe(self) -> pd.DataFrame:
        """All draws, one row per chain and draw, one column per name."""
        index = pd.MultiIndex.from_product(
            [range(self.n_chains), range(self.n_draws)], names=["chain", "draw"]
        )
        return pd.DataFrame(
            {name: values.reshape(-1) for name, values in self.draws.items()},
            index=index,
        )

    # --------------------------------------------------------------------------

    def summary(
        self, probs: Sequence[float] = (0.1, 0.5, 0.9)
    ) -> pd.DataFrame:
        """Posterior summary table.

        Parameters
        ----------
        probs : Sequence[float], default=(0.1, 0.5, 0.9)
            Quantiles to report.

        Returns
        -------
        pd.DataFrame
            One row per output name with ``mean``, ``sd``, the requested
            quantiles and, for sampling with at least four draws per chain,
            ``n_eff`` and ``Rhat``.
        """
        diagnostics = (
            self.algorithm == Algorithm.SAMPLING and self.n_draws >= 4
        )
        rows = {}
        for name, values in self.draws.items():
            row = {"mean": float(np.mean(values)), "sd": float(np.std(values))}
            for p in probs:
                row[f"{100 * p:g}%"] = float(np.quantile(values, p))
            if diagnostics:
                row["n_eff"] = float(effective_sample_size(values))
                row["Rhat"] = float(split_gelman_rubin(values))
            rows[name] = row
        return pd.DataFrame.from_dict(rows, orient="index")

    # --------------------------------------------------------------------------

    def prior_summary(self) -> Dict[str, Any]:
        """Priors used by the fit.

        Returns
        -------
        Dict[str, Any]
            ``prior`` (R2 location and summary, or None entries for a flat
            prior), ``prior_counts`` (Dirichlet concentration) and, for
            skewed models, ``scobit_exponent``.
        """
        return self.prior_info

    # --------------------------------------------------------------------------

    def log_posterior(self) -> np.ndarray:
        """Log posterior draws, shape ``(chains, draws)``."""
        return self.draws[LOG_POSTERIOR_NAME]
