"""
Unified inference interface for bpolr.

This module provides the single entry point for fitting a Bayesian
proportional-odds model by NUTS sampling or by a mean-field / full-rank
variational approximation.
"""

from typing import Any, Dict, Optional, Sequence, Union
import logging

import numpy as np
import pandas as pd

from ..config import InferenceConfig
from ..config.enums import Algorithm, Link
from ..data import PolrData, output_parameters
from ..postprocessing import output_names, relabel_draws, untransform_coefficients
from ..priors import DirichletPrior, R2Prior, dirichlet, summarize_polr_prior
from ..preprocessing import (
    as_design_matrix,
    encode_response,
    prepare_offset,
    prepare_prior,
    prepare_prior_counts,
    prepare_scobit,
    prepare_weights,
    qr_decorrelate,
    resolve_do_residuals,
)
from ..results import PolrFit
from .dispatcher import _run_inference
from .inference_config import create_default_inference_config
from .utils import check_backend_output, resolve_algorithm

logger = logging.getLogger(__name__)

# Public API
__all__ = ["fit_polr", "create_default_inference_config"]

# Marker for an omitted coefficient prior
_MISSING = object()

# ==============================================================================
# Public API
# ==============================================================================


def fit_polr(
    x,
    y: Union[pd.Categorical, pd.Series],
    wt: Optional[Sequence[float]] = None,
    offset: Optional[Sequence[float]] = None,
    method: str = "logistic",
    prior: Optional[R2Prior] = _MISSING,
    prior_counts: Optional[DirichletPrior] = dirichlet(1),
    shape: Optional[float] = None,
    rate: Optional[float] = None,
    prior_PD: bool = False,
    algorithm: Optional[str] = None,
    adapt_delta: Optional[float] = None,
    do_residuals: Optional[bool] = None,
    inference_config: Optional[InferenceConfig] = None,
    seed: int = 42,
    **kwargs,
) -> PolrFit:
    """Fit a Bayesian proportional-odds (ordinal) regression.

    The predictors are centred and orthogonalized by a thin QR
    decomposition, the model is fitted on the orthogonal scale, and the
    coefficients are mapped back to the original predictors before the
    draws are labelled.

    Parameters
    ----------
    x : array-like or pd.DataFrame
        Design matrix of shape ``(N, K)``. A leading ``"(Intercept)"``
        column is dropped. ``None`` fits a model without predictors.
    y : pd.Categorical or categorical pd.Series
        Response with ``J >= 2`` levels, ideally ordered.
    wt : Optional[Sequence[float]], default=None
        Non-negative observation weights.
    offset : Optional[Sequence[float]], default=None
        Offsets added to the linear predictor.
    method : str, default="logistic"
        Link function: "logistic", "probit", "loglog", "cloglog" or
        "cauchit".
    prior : Optional[R2Prior]
        Prior on the coefficients, built with :func:`bpolr.R2`. Must be
        given explicitly; ``None`` selects a flat prior.
    prior_counts : Optional[DirichletPrior], default=dirichlet(1)
        Dirichlet prior on the outcome proportions at the predictor means.
    shape, rate : Optional[float], default=None
        Gamma prior on the scobit exponent. Giving both (binary outcomes
        with the logistic link only) fits a skewed model.
    prior_PD : bool, default=False
        Draw from the prior predictive distribution (ignore the outcome).
    algorithm : Optional[str], default=None
        "sampling", "meanfield" or "fullrank". Defaults to the method of
        ``inference_config``, or "sampling".
    adapt_delta : Optional[float], default=None
        Target acceptance probability for sampling. Defaults to 0.95 for a
        flat prior and 0.99 for an R2 prior. Ignored by variational
        algorithms.
    do_residuals : Optional[bool], default=None
        Compute residual draws. Defaults to True for sampling. Never done
        for binary outcomes or prior predictive runs.
    inference_config : Optional[InferenceConfig], default=None
        Engine settings. Defaults to
        ``create_default_inference_config(algorithm)``.
    seed : int, default=42
        Random seed for reproducibility.
    **kwargs
        Engine settings. Names of ``MCMCConfig`` or ``VIConfig`` fields
        update the active config; for sampling, any other name is passed to
        the NUTS kernel.

    Returns
    -------
    PolrFit
        Labelled posterior (or approximate posterior) draws.

    Raises
    ------
    TypeError
        If ``prior`` is omitted.
    ValueError
        If an argument is invalid or inconsistent with the data.
    RuntimeError
        If the engine returns no usable draws.

    Examples
    --------
    >>> import bpolr
    >>> fit = bpolr.fit_polr(
    ...     x, y, prior=bpolr.R2(0.25, what="median"), n_chains=2
    ... )
    >>> fit.summary()
    """
    if prior is _MISSING:
        raise TypeError("'location' must be specified")

    algorithm = resolve_algorithm(algorithm, inference_config)
    link = _as_link(method)

    # --------------------------------------------------------------------------
    # Data
    # --------------------------------------------------------------------------

    y_levels, J, y_codes = encode_response(y)
    if x is None:
        x_values, x_names = np.zeros((len(y_codes), 0)), []
    else:
        x_values, x_names = as_design_matrix(x)
    if x_values.shape[0] != len(y_codes):
        raise ValueError(
            f"'x' has {x_values.shape[0]} rows but 'y' has {len(y_codes)} "
            "observations"
        )
    design = qr_decorrelate(x_values, x_names)
    N, K = design.N, design.K

    has_weights, weights = prepare_weights(wt, N)
    has_offset, offset_ = prepare_offset(offset, N)
    prior_dist, regularization = prepare_prior(prior, K)
    concentration = prepare_prior_counts(prior_counts, J)
    shape_, rate_, is_skewed = prepare_scobit(shape, rate, J, link)
    residuals_on = resolve_do_residuals(do_residuals, algorithm, J, prior_PD)

    data = PolrData(
        J=J,
        N=N,
        K=K,
        X=design.Q,
        xbar=design.xbar_transformed,
        y=y_codes,
        prior_PD=bool(prior_PD),
        link=link.code,
        has_weights=has_weights,
        weights=weights,
        has_offset=has_offset,
        offset_=offset_,
        prior_dist=prior_dist,
        regularization=regularization,
        prior_counts=concentration,
        is_skewed=is_skewed,
        shape=shape_,
        rate=rate_,
        do_residuals=residuals_on,
    )
    logger.debug(
        "Fitting polr: N=%d, K=%d, J=%d, link=%s, algorithm=%s",
        N,
        K,
        J,
        link.value,
        algorithm.value,
    )

    # --------------------------------------------------------------------------
    # Inference
    # --------------------------------------------------------------------------

    if inference_config is None:
        inference_config = create_default_inference_config(algorithm)
    inference_config = _apply_engine_settings(
        inference_config, adapt_delta, kwargs
    )

    output = _run_inference(
        algorithm=algorithm,
        data=data,
        inference_config=inference_config,
        seed=seed,
        prior=prior,
    )
    check_backend_output(output)

    # --------------------------------------------------------------------------
    # Postprocessing
    # --------------------------------------------------------------------------

    samples = dict(output.samples)
    if K > 0:
        samples["beta"] = untransform_coefficients(samples["beta"], design.R_inv)

    parameters = output_parameters(J, is_skewed)
    names = output_names(x_names, y_levels, is_skewed)
    draws = relabel_draws(samples, parameters, names, output.log_posterior)

    return PolrFit(
        draws=draws,
        algorithm=algorithm,
        link=link,
        y_levels=y_levels,
        x_names=x_names,
        R_inv=design.R_inv,
        data=data,
        prior_info=summarize_polr_prior(prior, concentration, shape_, rate_),
        raw=output.raw,
        losses=output.losses,
        residuals=samples.get("residuals") if residuals_on else None,
        divergences=output.divergences,
        converged=output.converged,
    )


# ==============================================================================
# Helpers
# ==============================================================================


def _as_link(method: Union[str, Link]) -> Link:
    try:
        return Link(method)
    except ValueError:
        raise ValueError(
            f"'method' must be one of {[link.value for link in Link]}, "
            f"got {method!r}"
        ) from None


# ------------------------------------------------------------------------------


def _apply_engine_settings(
    inference_config: InferenceConfig,
    adapt_delta: Optional[float],
    kwargs: Dict[str, Any],
) -> InferenceConfig:
    """Fold ``adapt_delta`` and extra keyword arguments into the config.

    Raises
    ------
    ValueError
        If a variational fit receives a setting ``VIConfig`` does not have.
    """
    group = inference_config.get_config()
    fields = set(type(group).model_fields)
    updates = {name: value for name, value in kwargs.items() if name in fields}
    extra = {name: value for name, value in kwargs.items() if name not in fields}

    if inference_config.method == Algorithm.SAMPLING:
        if adapt_delta is not None:
            updates["adapt_delta"] = adapt_delta
        if extra:
            kernel_kwargs = dict(
                updates.get("mcmc_kwargs") or group.mcmc_kwargs or {}
            )
            kernel_kwargs.update(extra)
            updates["mcmc_kwargs"] = kernel_kwargs
    elif extra:
        raise ValueError(
            f"Unknown settings for {inference_config.method.value}: "
            f"{sorted(extra)}. Valid settings: {sorted(fields)}"
        )

    return inference_config.with_updates(**updates)
