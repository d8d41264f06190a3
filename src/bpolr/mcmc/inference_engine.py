"""
Inference engine for MCMC.

This module handles the execution of NUTS sampling for a prepared data
record.
"""

from typing import Any, Dict, Optional

from jax import random
from numpyro.infer import MCMC, NUTS

from ..data import PolrData
from ..models import get_model
from ..priors import R2Prior

# Default NUTS tree depth
DEFAULT_MAX_TREE_DEPTH = 15


def default_sampler_control(
    prior: Optional[R2Prior],
    adapt_delta: Optional[float] = None,
    max_tree_depth: Optional[int] = None,
) -> Dict[str, Any]:
    """Sampler control settings with prior-dependent defaults.

    Parameters
    ----------
    prior : Optional[R2Prior]
        Coefficient prior; ``None`` means flat.
    adapt_delta : Optional[float]
        User-requested target acceptance probability. When None, 0.95 is
        used for a flat prior and 0.99 for an R2 prior.
    max_tree_depth : Optional[int]
        User-requested maximum tree depth (defaults to 15).

    Returns
    -------
    Dict[str, Any]
        ``target_accept_prob`` and ``max_tree_depth`` for ``NUTS``.
    """
    if adapt_delta is None:
        adapt_delta = 0.95 if prior is None else 0.99
    if max_tree_depth is None:
        max_tree_depth = DEFAULT_MAX_TREE_DEPTH
    return {
        "target_accept_prob": float(adapt_delta),
        "max_tree_depth": int(max_tree_depth),
    }


class MCMCInferenceEngine:
    """Handles MCMC inference execution."""

    @staticmethod
    def run_inference(
        data: PolrData,
        n_samples: int = 1_000,
        n_warmup: int = 1_000,
        n_chains: int = 4,
        chain_method: str = "sequential",
        seed: int = 42,
        progress_bar: bool = True,
        mcmc_kwargs: Optional[dict] = None,
        model_name: str = "polr",
    ) -> MCMC:
        """Execute MCMC inference using NUTS.

        Parameters
        ----------
        data : PolrData
            Prepared data record.
        n_samples : int, default=1_000
            Number of post-warmup draws per chain.
        n_warmup : int, default=1_000
            Number of warmup draws.
        n_chains : int, default=4
            Number of chains.
        chain_method : str, default="sequential"
            How chains are run (see ``numpyro.infer.MCMC``).
        seed : int, default=42
            Random seed for reproducibility.
        progress_bar : bool, default=True
            Whether to show the sampler progress bar.
        mcmc_kwargs : Optional[dict], default=None
            Keyword arguments for the NUTS kernel (e.g.,
            ``target_accept_prob``, ``max_tree_depth``).
        model_name : str, default="polr"
            Registry key of the model program.

        Returns
        -------
        numpyro.infer.MCMC
            The MCMC object after the run, with ``potential_energy`` and
            ``diverging`` collected as extra fields.
        """
        model = get_model(model_name)

        kernel_kwargs: Dict[str, Any] = dict(mcmc_kwargs or {})
        nuts_kernel = NUTS(model, **kernel_kwargs)

        mcmc = MCMC(
            nuts_kernel,
            num_samples=n_samples,
            num_warmup=n_warmup,
            num_chains=n_chains,
            chain_method=chain_method,
            progress_bar=progress_bar,
        )

        rng_key = random.PRNGKey(seed)

        mcmc.run(
            rng_key,
            extra_fields=("potential_energy", "diverging"),
            **data.model_kwargs(),
        )

        return mcmc
