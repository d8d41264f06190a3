"""
Utility functions for inference.

This module holds the normalized container for engine output, the check
applied to it before postprocessing, and config validation helpers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import warnings

import numpy as np

from ..config import InferenceConfig
from ..config.enums import Algorithm

# ==============================================================================
# Engine Output
# ==============================================================================


@dataclass
class BackendDraws:
    """Engine output with every site shaped ``(chains, draws, ...)``.

    Attributes
    ----------
    samples : Dict[str, np.ndarray]
        Draws of latent and deterministic sites.
    log_posterior : np.ndarray
        Log posterior density per chain and draw.
    raw : Any
        Engine object the draws were taken from.
    losses : Optional[np.ndarray]
        Loss history of a variational fit.
    divergences : Optional[int]
        Number of divergent transitions (sampling only).
    converged : Optional[bool]
        Whether the variational optimization converged.
    """

    samples: Dict[str, np.ndarray]
    log_posterior: np.ndarray
    raw: Any = field(default=None, repr=False)
    losses: Optional[np.ndarray] = None
    divergences: Optional[int] = None
    converged: Optional[bool] = None


# ------------------------------------------------------------------------------


def check_backend_output(output: BackendDraws) -> None:
    """Fail early when the engine did not produce usable draws.

    Raises
    ------
    RuntimeError
        If no draws were returned or a site has no finite draws.
    """
    if not output.samples or output.log_posterior.size == 0:
        raise RuntimeError("The engine returned no draws.")

    for name, values in output.samples.items():
        if values.size and not np.any(np.isfinite(values)):
            raise RuntimeError(
                f"The engine returned no finite draws for '{name}'."
            )

    if output.divergences:
        warnings.warn(
            f"There were {output.divergences} divergent transitions after "
            "warmup. Increasing adapt_delta may help.",
            UserWarning,
            stacklevel=3,
        )


# ==============================================================================
# Config Validation
# ==============================================================================


def resolve_algorithm(
    algorithm: Optional[str], inference_config: Optional[InferenceConfig]
) -> Algorithm:
    """Algorithm requested by the user.

    Falls back to the config's method, then to sampling.

    Raises
    ------
    ValueError
        If both are given and disagree.
    """
    if algorithm is None:
        if inference_config is None:
            return Algorithm.SAMPLING
        return inference_config.method
    algorithm = Algorithm(algorithm)
    if inference_config is not None and inference_config.method != algorithm:
        raise ValueError(
            f"Inference method mismatch: algorithm={algorithm.value} "
            f"but inference_config.method={inference_config.method.value}"
        )
    return algorithm
