"""
MCMC (Markov Chain Monte Carlo) execution.

This module runs NUTS through the MCMC inference engine and collects the
per-chain draws, log posterior and divergence count.
"""

from typing import Optional
import logging

import numpy as np

from ..config import MCMCConfig
from ..data import PolrData
from ..mcmc import MCMCInferenceEngine, default_sampler_control
from ..priors import R2Prior
from .utils import BackendDraws

logger = logging.getLogger(__name__)

# ==============================================================================
# MCMC Inference Engine
# ==============================================================================


def _run_mcmc_inference(
    data: PolrData,
    mcmc_config: MCMCConfig,
    seed: int,
    prior: Optional[R2Prior] = None,
) -> BackendDraws:
    """Execute NUTS sampling.

    Sampler controls not set in ``mcmc_config`` fall back to the
    prior-dependent defaults of ``default_sampler_control``. Kernel keyword
    arguments in ``mcmc_kwargs`` take precedence over both.

    Parameters
    ----------
    data : PolrData
        Prepared data record.
    mcmc_config : MCMCConfig
        Sampling configuration.
    seed : int
        Random seed for reproducibility.
    prior : Optional[R2Prior]
        Coefficient prior; ``None`` means flat.

    Returns
    -------
    BackendDraws
        Post-warmup draws grouped by chain, with the log posterior taken as
        the negative potential energy.
    """
    kernel_kwargs = default_sampler_control(
        prior,
        adapt_delta=mcmc_config.adapt_delta,
        max_tree_depth=mcmc_config.max_tree_depth,
    )
    kernel_kwargs.update(mcmc_config.mcmc_kwargs or {})
    logger.debug("NUTS kernel settings: %s", kernel_kwargs)

    mcmc = MCMCInferenceEngine.run_inference(
        data=data,
        n_samples=mcmc_config.n_samples,
        n_warmup=mcmc_config.n_warmup,
        n_chains=mcmc_config.n_chains,
        chain_method=mcmc_config.chain_method,
        seed=seed,
        progress_bar=mcmc_config.progress_bar,
        mcmc_kwargs=kernel_kwargs,
    )

    samples = {
        name: np.asarray(values)
        for name, values in mcmc.get_samples(group_by_chain=True).items()
    }
    extra = mcmc.get_extra_fields(group_by_chain=True)

    return BackendDraws(
        samples=samples,
        log_posterior=-np.asarray(extra["potential_energy"], dtype=float),
        raw=mcmc,
        divergences=int(np.sum(extra["diverging"])),
    )
