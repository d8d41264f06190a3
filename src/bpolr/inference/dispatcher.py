"""
Inference routing using registry pattern.

This module provides the routing mechanism that dispatches inference execution
to the appropriate handler based on the estimation algorithm. Every handler
returns a ``BackendDraws`` with sites shaped ``(chains, draws, ...)``, so the
postprocessing downstream does not depend on the engine.
"""

from typing import Callable, Optional

from ..config import InferenceConfig, MCMCConfig, VIConfig
from ..config.enums import Algorithm
from ..data import PolrData
from ..priors import R2Prior
from .utils import BackendDraws

# ==============================================================================
# Registry for inference handlers
# ==============================================================================

# Type alias for inference handler function signature
_InferenceHandler = Callable[
    [PolrData, Algorithm, MCMCConfig | VIConfig, int, Optional[R2Prior]],
    BackendDraws,
]

# Registry mapping algorithms to their handler functions
_INFERENCE_HANDLERS: dict[Algorithm, _InferenceHandler] = {}


def _register_inference_handler(
    method: Algorithm, handler: _InferenceHandler
) -> None:
    """Register an inference handler function.

    Parameters
    ----------
    method : Algorithm
        The algorithm this handler handles.
    handler : _InferenceHandler
        Handler function that executes inference for this algorithm.
    """
    _INFERENCE_HANDLERS[method] = handler


# ------------------------------------------------------------------------------
# Handler implementations (registered below)
# ------------------------------------------------------------------------------


def _mcmc_handler(
    data: PolrData,
    algorithm: Algorithm,
    config: MCMCConfig | VIConfig,
    seed: int,
    prior: Optional[R2Prior] = None,
) -> BackendDraws:
    """Handler for NUTS sampling."""
    from .mcmc import _run_mcmc_inference

    if not isinstance(config, MCMCConfig):
        raise ValueError(f"Expected MCMCConfig for sampling, got {type(config)}")

    return _run_mcmc_inference(
        data=data, mcmc_config=config, seed=seed, prior=prior
    )


# ------------------------------------------------------------------------------


def _vi_handler(
    data: PolrData,
    algorithm: Algorithm,
    config: MCMCConfig | VIConfig,
    seed: int,
    prior: Optional[R2Prior] = None,
) -> BackendDraws:
    """Handler for variational inference."""
    from .vi import _run_vi_inference

    if not isinstance(config, VIConfig):
        raise ValueError(
            f"Expected VIConfig for {algorithm.value}, got {type(config)}"
        )

    return _run_vi_inference(
        data=data, algorithm=algorithm, vi_config=config, seed=seed
    )


# ------------------------------------------------------------------------------
# Register handlers
# ------------------------------------------------------------------------------

_register_inference_handler(Algorithm.SAMPLING, _mcmc_handler)
_register_inference_handler(Algorithm.MEANFIELD, _vi_handler)
_register_inference_handler(Algorithm.FULLRANK, _vi_handler)


# ==============================================================================
# Public Dispatch Function
# ==============================================================================


def _run_inference(
    algorithm: Algorithm,
    data: PolrData,
    inference_config: InferenceConfig,
    seed: int,
    prior: Optional[R2Prior] = None,
) -> BackendDraws:
    """Route inference to the appropriate handler.

    Parameters
    ----------
    algorithm : Algorithm
        Estimation algorithm.
    data : PolrData
        Prepared data record.
    inference_config : InferenceConfig
        Inference configuration; its method must equal ``algorithm``.
    seed : int
        Random seed for reproducibility.
    prior : Optional[R2Prior]
        Coefficient prior, used for prior-dependent sampler defaults.

    Returns
    -------
    BackendDraws
        Engine output normalized to ``(chains, draws, ...)`` sites.

    Raises
    ------
    ValueError
        If the algorithm is not registered or does not match the config.
    """
    algorithm = Algorithm(algorithm)
    if inference_config.method != algorithm:
        raise ValueError(
            f"Inference method mismatch: algorithm={algorithm.value} "
            f"but inference_config.method={inference_config.method.value}"
        )

    handler = _INFERENCE_HANDLERS.get(algorithm)
    if handler is None:
        raise ValueError(
            f"Unknown algorithm: {algorithm}. "
            f"Registered algorithms: {list(_INFERENCE_HANDLERS.keys())}"
        )

    return handler(data, algorithm, inference_config.get_config(), seed, prior)
