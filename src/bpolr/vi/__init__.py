"""
Variational inference module for proportional-odds fits.

Fits mean-field or full-rank Gaussian approximations with NumPyro's SVI.
"""

from .inference_engine import VIInferenceEngine, VIRunResult, make_guide

__all__ = [
    "VIInferenceEngine",
    "VIRunResult",
    "make_guide",
]
