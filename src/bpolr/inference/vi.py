"""
Variational inference execution.

This module runs the variational inference engine and stores its draws as a
single chain.
"""

import numpy as np

from ..config import VIConfig
from ..config.enums import Algorithm
from ..data import PolrData
from ..vi import VIInferenceEngine
from .utils import BackendDraws

# ==============================================================================
# VI Inference Engine
# ==============================================================================


def _run_vi_inference(
    data: PolrData,
    algorithm: Algorithm,
    vi_config: VIConfig,
    seed: int,
) -> BackendDraws:
    """Fit a mean-field or full-rank approximation and draw from it.

    Parameters
    ----------
    data : PolrData
        Prepared data record.
    algorithm : Algorithm
        ``meanfield`` or ``fullrank``.
    vi_config : VIConfig
        Variational configuration.
    seed : int
        Random seed for reproducibility.

    Returns
    -------
    BackendDraws
        Draws from the approximation with a leading chain dimension of one,
        the loss history and the convergence flag.
    """
    result = VIInferenceEngine.run_inference(
        data=data,
        algorithm=algorithm,
        optimizer=vi_config.optimizer,
        loss=vi_config.loss,
        n_steps=vi_config.n_steps,
        n_draws=vi_config.n_draws,
        step_size=vi_config.step_size,
        eval_elbo=vi_config.eval_elbo,
        tol_rel_obj=vi_config.tol_rel_obj,
        seed=seed,
        stable_update=vi_config.stable_update,
        progress=vi_config.progress,
    )

    samples = {
        name: np.asarray(values)[None] for name, values in result.samples.items()
    }

    return BackendDraws(
        samples=samples,
        log_posterior=np.asarray(result.log_posterior, dtype=float)[None],
        raw=result,
        losses=np.asarray(result.losses),
        converged=bool(result.converged),
    )
