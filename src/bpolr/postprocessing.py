"""
Postprocessing of engine output.

Coefficients come back from the engine on the scale of the orthogonal
design. This module maps them back to the original predictors
(``beta = R_inv @ theta`` for every chain and draw) and flattens the reported
sites into named scalar draws, using the predictor names and the outcome
level names.
"""

from collections import OrderedDict
from typing import Dict, List, Mapping, Sequence

import numpy as np

from .preprocessing import INTERCEPT_NAME

LOG_POSTERIOR_NAME = "log-posterior"

# ==============================================================================
# Inverse Transform
# ==============================================================================


def untransform_coefficients(theta: np.ndarray, R_inv: np.ndarray) -> np.ndarray:
    """Map coefficients from the orthogonal scale back to the predictors.

    Parameters
    ----------
    theta : np.ndarray
        Coefficient draws on the ``Q`` scale, shape ``(chains, draws, K)``.
    R_inv : np.ndarray
        Inverse of the triangular QR factor, shape ``(K, K)``.

    Returns
    -------
    np.ndarray
        ``R_inv @ theta`` for every chain and draw, same shape as ``theta``.
    """
    theta = np.asarray(theta, dtype=float)
    R_inv = np.asarray(R_inv, dtype=float)
    if theta.shape[-1] != R_inv.shape[1]:
        raise ValueError(
            f"theta has {theta.shape[-1]} coefficients but R_inv is "
            f"{R_inv.shape}"
        )
    return np.einsum("kj,...j->...k", R_inv, theta)


# ==============================================================================
# Relabelling
# ==============================================================================


def cutpoint_names(y_levels: Sequence[str]) -> List[str]:
    """Cutpoint names between adjacent levels, or the intercept when binary."""
    y_levels = [str(level) for level in y_levels]
    if len(y_levels) > 2:
        return [f"{lo}|{hi}" for lo, hi in zip(y_levels[:-1], y_levels[1:])]
    return [INTERCEPT_NAME]


# ------------------------------------------------------------------------------


def output_names(
    x_names: Sequence[str], y_levels: Sequence[str], is_skewed: bool
) -> List[str]:
    """Names of the reported scalar quantities, in output order.

    Multi-category fits report the predictors, the cutpoints between
    adjacent levels (``"low|mid"``), the expected proportion of each level
    and the log posterior. Binary fits report the intercept first, then the
    predictors, the scobit exponent when skewed, the expected upper-level
    rate and the log posterior.
    """
    x_names = list(x_names)
    y_levels = [str(level) for level in y_levels]
    if len(y_levels) > 2:
        return (
            x_names
            + cutpoint_names(y_levels)
            + [f"mean_PPD:{level}" for level in y_levels]
            + [LOG_POSTERIOR_NAME]
        )
    return (
        cutpoint_names(y_levels)
        + x_names
        + (["alpha"] if is_skewed else [])
        + ["mean_PPD", LOG_POSTERIOR_NAME]
    )


# ------------------------------------------------------------------------------


def relabel_draws(
    samples: Mapping[str, np.ndarray],
    parameters: Sequence[str],
    names: Sequence[str],
    log_posterior: np.ndarray,
) -> Dict[str, np.ndarray]:
    """Flatten the reported sites into named ``(chains, draws)`` arrays.

    Parameters
    ----------
    samples : Mapping[str, np.ndarray]
        Site draws with leading ``(chains, draws)`` dimensions.
    parameters : Sequence[str]
        Sites to report, in output order.
    names : Sequence[str]
        One name per scalar component of the reported sites, followed by
        the log-posterior name.
    log_posterior : np.ndarray
        Log posterior per chain and draw.

    Returns
    -------
    Dict[str, np.ndarray]
        Ordered mapping from name to draws of shape ``(chains, draws)``.

    Raises
    ------
    ValueError
        If the number of names does not match the flattened components, or
        if names repeat (e.g. a predictor named like a reported quantity).
    """
    duplicates = sorted({name for name in names if list(names).count(name) > 1})
    if duplicates:
        raise ValueError(
            f"Output names must be unique; repeated: {duplicates}. Rename the "
            "predictors that clash with reported quantities."
        )

    log_posterior = np.asarray(log_posterior, dtype=float)
    chains, draws = log_posterior.shape
    columns = []
    for name in parameters:
        values = np.asarray(samples[name], dtype=float)
        size = int(np.prod(values.shape[2:], dtype=int))
        columns.append(values.reshape(chains, draws, size))
    columns.append(log_posterior[..., None])
    flat = np.concatenate(columns, axis=-1)

    if flat.shape[-1] != len(names):
        raise ValueError(
            f"Got {len(names)} names for {flat.shape[-1]} reported quantities"
        )
    return OrderedDict(
        (name, flat[..., i]) for i, name in enumerate(names)
    )
