"""
Inference configuration utilities.

This module provides helper functions for creating default inference
configurations. Uses a registry pattern for extensible default config
creation.
"""

from typing import Any, Callable, Dict
from ..config import InferenceConfig, MCMCConfig, VIConfig
from ..config.enums import Algorithm

# ==============================================================================
# Registry for default inference config factories
# ==============================================================================

_DEFAULT_CONFIG_FACTORIES: dict[Algorithm, Callable[[], InferenceConfig]] = {}


def _register_default_config_factory(
    method: Algorithm, factory: Callable[[], InferenceConfig]
) -> None:
    """Register a factory function for creating default configs.

    Parameters
    ----------
    method : Algorithm
        The algorithm this factory handles.
    factory : Callable[[], InferenceConfig]
        Factory function that creates a default InferenceConfig.
    """
    _DEFAULT_CONFIG_FACTORIES[method] = factory


# ------------------------------------------------------------------------------
# Default config factory implementations
# ------------------------------------------------------------------------------


def _create_default_mcmc_config() -> InferenceConfig:
    """Create default sampling config: 4 chains of 1000 warmup + 1000 draws."""
    mcmc_config = MCMCConfig(
        n_samples=1_000,
        n_warmup=1_000,
        n_chains=4,
        mcmc_kwargs=None,
    )
    return InferenceConfig.from_mcmc(mcmc_config)


# ------------------------------------------------------------------------------


def _create_default_meanfield_config() -> InferenceConfig:
    """Create default mean-field config: up to 10k steps, 1000 draws."""
    return InferenceConfig.from_vi(VIConfig(), algorithm=Algorithm.MEANFIELD)


# ------------------------------------------------------------------------------


def _create_default_fullrank_config() -> InferenceConfig:
    """Create default full-rank config: up to 10k steps, 1000 draws."""
    return InferenceConfig.from_vi(VIConfig(), algorithm=Algorithm.FULLRANK)


# ------------------------------------------------------------------------------
# Register factories
# ------------------------------------------------------------------------------

_register_default_config_factory(Algorithm.SAMPLING, _create_default_mcmc_config)
_register_default_config_factory(
    Algorithm.MEANFIELD, _create_default_meanfield_config
)
_register_default_config_factory(
    Algorithm.FULLRANK, _create_default_fullrank_config
)


# ==============================================================================
# Public API
# ==============================================================================


def create_default_inference_config(algorithm: Algorithm) -> InferenceConfig:
    """Create default InferenceConfig for a given algorithm.

    Parameters
    ----------
    algorithm : Algorithm
        The estimation algorithm to create a default config for.

    Returns
    -------
    InferenceConfig
        InferenceConfig with default settings for the algorithm.

    Raises
    ------
    ValueError
        If the algorithm is not registered.

    Examples
    --------
    >>> from bpolr.inference.inference_config import (
    ...     create_default_inference_config,
    ... )
    >>> config = create_default_inference_config(Algorithm.SAMPLING)
    >>> config.mcmc.n_chains
    4
    """
    factory = _DEFAULT_CONFIG_FACTORIES.get(Algorithm(algorithm))
    if factory is None:
        raise ValueError(
            f"Unknown algorithm: {algorithm}. "
            f"Registered algorithms: "
            f"{list(_DEFAULT_CONFIG_FACTORIES.keys())}"
        )
    return factory()


# ------------------------------------------------------------------------------


def select_engine_settings(
    algorithm: Algorithm, settings: Dict[str, Any]
) -> Dict[str, Any]:
    """Keep the settings that apply to ``algorithm``.

    Flat settings files carry the fields of every config group. Fields of
    the inactive group and ``None`` values are dropped; names that belong to
    no group are kept, so sampling can still forward them to the NUTS kernel.

    Parameters
    ----------
    algorithm : Algorithm
        The estimation algorithm that will run.
    settings : Dict[str, Any]
        Candidate keyword arguments for ``fit_polr``.

    Returns
    -------
    Dict[str, Any]
        Settings safe to pass to ``fit_polr`` for ``algorithm``.

    Examples
    --------
    >>> select_engine_settings("meanfield", {"n_chains": 4, "n_steps": 500})
    {'n_steps': 500}
    """
    active = type(create_default_inference_config(algorithm).get_config())
    known = set(MCMCConfig.model_fields) | set(VIConfig.model_fields)
    return {
        name: value
        for name, value in settings.items()
        if value is not None
        and (name in active.model_fields or name not in known)
    }
