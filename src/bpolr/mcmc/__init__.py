"""
Markov Chain Monte Carlo (MCMC) module for proportional-odds fits.

This module runs NUTS sampling through NumPyro.
"""

from .inference_engine import (
    MCMCInferenceEngine,
    default_sampler_control,
    DEFAULT_MAX_TREE_DEPTH,
)

__all__ = [
    "MCMCInferenceEngine",
    "default_sampler_control",
    "DEFAULT_MAX_TREE_DEPTH",
]
