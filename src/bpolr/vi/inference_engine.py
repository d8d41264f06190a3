"""
Inference engine for variational approximations.

This module fits a Gaussian approximation to the posterior in the
unconstrained space with NumPyro's SVI, either mean-field (``AutoNormal``) or
full-rank (``AutoMultivariateNormal``), and then draws from the fitted
approximation. Optimization stops once the relative change of the smoothed
ELBO falls below a tolerance.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
import warnings

import numpy as np
import jax
import jax.numpy as jnp
from jax import random, jit
import numpyro
from numpyro.infer import SVI, Predictive, Trace_ELBO
from numpyro.infer.autoguide import AutoMultivariateNormal, AutoNormal
from numpyro.infer.util import potential_energy, unconstrain_fn
from rich.progress import (
    Progress,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeRemainingColumn,
    MofNCompleteColumn,
)

from ..config.enums import Algorithm
from ..data import PolrData
from ..models import get_model, model_sites

# ==============================================================================
# VIRunResult class
# ==============================================================================


@dataclass
class VIRunResult:
    """Result container for a variational fit.

    Attributes
    ----------
    params : Dict[str, Any]
        Optimized variational parameters.
    losses : jnp.ndarray
        Loss (negative ELBO) at each optimization step.
    guide : Any
        The fitted autoguide.
    samples : Dict[str, jnp.ndarray]
        Draws of the latent and deterministic sites from the approximation,
        each with a leading draw dimension.
    log_posterior : jnp.ndarray
        Unnormalized log posterior density (unconstrained space) per draw.
    converged : bool
        Whether the relative ELBO tolerance was reached.
    stopped_at_step : int
        Number of optimization steps run.
    state : Any
        Final SVI state.
    """

    params: Dict[str, Any]
    losses: jnp.ndarray
    guide: Any
    samples: Dict[str, jnp.ndarray]
    log_posterior: jnp.ndarray
    converged: bool = False
    stopped_at_step: int = 0
    state: Any = None


# ------------------------------------------------------------------------------
# Helper functions
# ------------------------------------------------------------------------------

_GUIDES: Dict[Algorithm, Callable] = {
    Algorithm.MEANFIELD: AutoNormal,
    Algorithm.FULLRANK: AutoMultivariateNormal,
}


def make_guide(model: Callable, algorithm: Algorithm):
    """Autoguide for a variational algorithm."""
    algorithm = Algorithm(algorithm)
    guide_cls = _GUIDES.get(algorithm)
    if guide_cls is None:
        raise ValueError(
            f"Algorithm '{algorithm.value}' has no variational guide. "
            f"Variational algorithms: {[a.value for a in _GUIDES]}"
        )
    return guide_cls(model)


# ------------------------------------------------------------------------------


def _run_until_converged(
    svi: SVI,
    rng_key: random.PRNGKey,
    model_kwargs: Dict[str, Any],
    n_steps: int,
    eval_elbo: int,
    tol_rel_obj: Optional[float],
    stable_update: bool = True,
    progress: bool = True,
) -> Tuple[Any, List[float], bool]:
    """Run SVI until the smoothed loss stops changing.

    Every ``eval_elbo`` steps the mean loss over the last ``eval_elbo``
    steps is compared with the previous window; the run stops when the
    relative change is below ``tol_rel_obj``.

    Returns
    -------
    Tuple[Any, List[float], bool]
        Final SVI state, loss history and whether convergence was reached.
    """
    svi_state = svi.init(rng_key, **model_kwargs)
    losses: List[float] = []
    previous_window: Optional[float] = None
    converged = False
    eps = 1e-8  # Small constant to avoid division by zero

    def body_fn(svi_state):
        if stable_update:
            return svi.stable_update(svi_state, **model_kwargs)
        return svi.update(svi_state, **model_kwargs)

    jit_body_fn = jit(body_fn)

    progress_ctx = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        TextColumn("{task.fields[loss_info]}"),
        disable=not progress,
    )

    with progress_ctx as pbar:
        task = pbar.add_task(
            "Variational optimization", total=n_steps, loss_info=""
        )
        for step in range(n_steps):
            svi_state, loss = jit_body_fn(svi_state)
            losses.append(float(loss))

            if (step + 1) % eval_elbo != 0:
                pbar.update(task, advance=1)
                continue

            window = float(np.mean(losses[-eval_elbo:]))
            pbar.update(
                task,
                advance=1,
                loss_info=(
                    f"avg. loss [{step + 2 - eval_elbo}-{step + 1}]: "
                    f"{window:.4e}"
                ),
            )
            if tol_rel_obj is not None and previous_window is not None:
                rel_change = abs(previous_window - window) / (abs(window) + eps)
                if rel_change < tol_rel_obj:
                    converged = True
                    pbar.console.print(
                        f"[bold green]Relative ELBO change {rel_change:.2e} "
                        f"below tolerance[/bold green] at step {step + 1}"
                    )
                    break
            previous_window = window

    return svi_state, losses, converged


# ------------------------------------------------------------------------------


def _log_posterior_draws(
    model: Callable, model_kwargs: Dict[str, Any], latent: Dict[str, jnp.ndarray]
) -> jnp.ndarray:
    """Log posterior density in the unconstrained space for each draw."""

    def single(draw):
        unconstrained = unconstrain_fn(model, (), model_kwargs, draw)
        return -potential_energy(model, (), model_kwargs, unconstrained)

    return jax.vmap(single)(latent)


# ==============================================================================
# VIInferenceEngine class
# ==============================================================================


class VIInferenceEngine:
    """Handles variational inference execution.

    Examples
    --------
    >>> from bpolr.vi import VIInferenceEngine
    >>> result = VIInferenceEngine.run_inference(
    ...     data=data, algorithm="meanfield", n_steps=5_000
    ... )
    >>> result.samples["beta"].shape
    (1000, 3)
    """

    @staticmethod
    def run_inference(
        data: PolrData,
        algorithm: Algorithm = Algorithm.MEANFIELD,
        optimizer: Optional[Any] = None,
        loss: Optional[Any] = None,
        n_steps: int = 10_000,
        n_draws: int = 1_000,
        step_size: float = 0.01,
        eval_elbo: int = 100,
        tol_rel_obj: Optional[float] = 0.01,
        seed: int = 42,
        stable_update: bool = True,
        progress: bool = True,
        model_name: str = "polr",
    ) -> VIRunResult:
        """Fit a variational approximation and draw from it.

        Parameters
        ----------
        data : PolrData
            Prepared data record.
        algorithm : Algorithm, default=MEANFIELD
            ``meanfield`` (diagonal Gaussian) or ``fullrank`` (dense
            Gaussian).
        optimizer : Optional[numpyro.optim optimizer]
            Defaults to ``Adam(step_size)``.
        loss : Optional[numpyro.infer.elbo]
            Defaults to ``Trace_ELBO()``.
        n_steps : int, default=10_000
            Maximum number of optimization steps.
        n_draws : int, default=1_000
            Number of draws taken from the fitted approximation.
        step_size : float, default=0.01
            Step size of the default Adam optimizer.
        eval_elbo : int, default=100
            Steps between convergence checks.
        tol_rel_obj : Optional[float], default=0.01
            Relative tolerance on the smoothed loss. None runs all steps.
        seed : int, default=42
            Random seed for reproducibility.
        stable_update : bool, default=True
            Use ``SVI.stable_update``, which skips non-finite updates.
        progress : bool, default=True
            Whether to show a progress bar.
        model_name : str, default="polr"
            Registry key of the model program.

        Returns
        -------
        VIRunResult
            Variational parameters, loss history, draws and log densities.
        """
        model = get_model(model_name)
        guide = make_guide(model, algorithm)

        if optimizer is None:
            optimizer = numpyro.optim.Adam(step_size=step_size)
        if loss is None:
            loss = Trace_ELBO()

        svi = SVI(model, guide, optimizer, loss=loss)
        fit_key, draw_key = random.split(random.PRNGKey(seed))
        model_kwargs = data.model_kwargs()

        svi_state, losses, converged = _run_until_converged(
            svi=svi,
            rng_key=fit_key,
            model_kwargs=model_kwargs,
            n_steps=n_steps,
            eval_elbo=eval_elbo,
            tol_rel_obj=tol_rel_obj,
            stable_update=stable_update,
            progress=progress,
        )
        if tol_rel_obj is not None and not converged:
            warnings.warn(
                f"The variational approximation did not converge within "
                f"{n_steps} steps; consider increasing n_steps.",
                UserWarning,
                stacklevel=2,
            )

        # Guide draws are only returned when requested explicitly
        latent_names, deterministic_names = model_sites(model, **model_kwargs)
        params = svi.get_params(svi_state)
        predictive = Predictive(
            model,
            guide=guide,
            params=params,
            num_samples=n_draws,
            return_sites=latent_names + deterministic_names,
        )
        samples = predictive(draw_key, **model_kwargs)

        latent = {name: samples[name] for name in latent_names}
        log_posterior = _log_posterior_draws(model, model_kwargs, latent)

        return VIRunResult(
            params=params,
            losses=jnp.array(losses),
            guide=guide,
            samples=samples,
            log_posterior=log_posterior,
            converged=converged,
            stopped_at_step=len(losses),
            state=svi_state,
        )
