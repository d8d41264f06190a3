"""
Proportional-odds model program.

The coefficients are parameterized through the proportion of variance of the
latent outcome explained by the predictors (R2) and a direction on the unit
sphere, and the cutpoints through the outcome-category proportions. With an
orthogonal design this parameterization lets a single Beta prior on R2
regularize all coefficients jointly.
"""

# Import JAX-related libraries
import jax.numpy as jnp
from jax.nn import log_sigmoid

# Import Pyro-related libraries
import numpyro
import numpyro.distributions as dist
from numpyro import handlers

# Import typing
from typing import List, Optional, Tuple

from .links import category_probabilities, make_cutpoints

# Import decorator for model registration
from .model_registry import register

# ------------------------------------------------------------------------------
# Proportional-odds model
# ------------------------------------------------------------------------------


@register("polr")
def polr_model(
    J: int,
    N: int,
    K: int,
    X: jnp.ndarray,
    xbar: jnp.ndarray,
    y: jnp.ndarray,
    prior_PD: bool,
    link: int,
    weights: Optional[jnp.ndarray],
    offset: Optional[jnp.ndarray],
    prior_dist: int,
    regularization: float,
    prior_counts: jnp.ndarray,
    is_skewed: bool,
    shape: float,
    rate: float,
    do_residuals: bool = False,
):
    """
    Cumulative-link model for an ordinal outcome with an R2 prior.

    The generative model is:

        - pi ~ Dirichlet(prior_counts), the outcome-category proportions,
        - for K > 1: u uniform on the unit sphere (a normalized standard
          normal vector z_u) and R2 ~ Beta(K/2, regularization) (uniform on
          (0, 1) under a flat prior), with
          beta = u * sqrt(R2 / (1 - R2)) * sqrt(N - 1),
        - for K == 1: R2 on (-1, 1) with density proportional to
          (1 - R2^2)^(regularization - 1), and
          beta = R2 / sqrt(1 - R2^2) * sqrt(N - 1),
        - cutpoints = Delta_y * F^-1(cumsum(pi)), where Delta_y is the
          standard deviation of the latent outcome,
        - P(y = j) = F(c_j - eta) - F(c_{j-1} - eta), eta = X beta + offset.

    With ``is_skewed`` (binary outcomes only) the scobit link is used
    instead: alpha ~ Gamma(shape, rate) and P(y = 1) = logistic(c - eta)^alpha.

    Coefficients are on the scale of the orthogonal design ``X``. The
    deterministic ``zeta`` site holds the cutpoints on the scale of the
    uncentred predictors (negated for binary outcomes, where it is the
    intercept).

    Parameters
    ----------
    J, N, K : int
        Number of categories, observations and predictors.
    X : jnp.ndarray
        Orthogonal design, shape ``(N, K)``.
    xbar : jnp.ndarray
        Predictor means on the orthogonal scale.
    y : jnp.ndarray
        1-based outcome codes.
    prior_PD : bool
        Skip the likelihood (prior predictive draws).
    link : int
        Link code.
    weights, offset : Optional[jnp.ndarray]
        Observation weights and linear-predictor offsets, or None.
    prior_dist : int
        1 for an R2 prior, 0 for a flat prior.
    regularization : float
        Second shape parameter of the Beta prior on R2.
    prior_counts : jnp.ndarray
        Dirichlet concentration.
    is_skewed : bool
        Use the scobit link.
    shape, rate : float
        Gamma prior on the scobit exponent.
    do_residuals : bool, default=False
        Record ``residuals`` = y - E[y] for each observation.

    Returns
    -------
    None
        This function defines the probabilistic model for use with NumPyro.
    """
    # Category proportions
    pi = numpyro.sample("pi", dist.Dirichlet(prior_counts))

    # Coefficients on the orthogonal scale
    sqrt_Nm1 = jnp.sqrt(N - 1.0)
    if K > 1:
        z_u = numpyro.sample(
            "z_u", dist.Normal(0.0, 1.0).expand([K]).to_event(1)
        )
        u = z_u / jnp.linalg.norm(z_u)
        if prior_dist == 1:
            R2 = numpyro.sample("R2", dist.Beta(K / 2.0, regularization))
        else:
            R2 = numpyro.sample("R2", dist.Uniform(0.0, 1.0))
        Delta_y = 1.0 / jnp.sqrt(1.0 - R2)
        beta = u * jnp.sqrt(R2) * Delta_y * sqrt_Nm1
    elif K == 1:
        R2 = numpyro.sample("R2", dist.Uniform(-1.0, 1.0))
        if prior_dist == 1:
            # Beta(1/2, regularization) on R2^2, folded onto (-1, 1)
            numpyro.factor(
                "R2_prior", (regularization - 1.0) * jnp.log1p(-(R2**2))
            )
        Delta_y = 1.0 / jnp.sqrt(1.0 - R2**2)
        beta = jnp.reshape(R2 * Delta_y * sqrt_Nm1, (1,))
    else:
        Delta_y = 1.0
        beta = jnp.zeros(0)
    beta = numpyro.deterministic("beta", beta)

    cutpoints = make_cutpoints(pi, Delta_y, link)

    # Linear predictor
    eta = X @ beta
    if offset is not None:
        eta = eta + offset

    # Category log-probabilities, shape (N, J)
    if is_skewed:
        alpha = numpyro.sample("alpha", dist.Gamma(shape, rate))
        log_p1 = alpha * log_sigmoid(cutpoints[0] - eta)
        log_probs = jnp.stack([log_p1, jnp.log(-jnp.expm1(log_p1))], axis=-1)
    else:
        probs = category_probabilities(cutpoints, eta, link)
        log_probs = jnp.log(jnp.clip(probs, jnp.finfo(probs.dtype).tiny, 1.0))

    # Likelihood
    if not prior_PD:
        log_lik = jnp.take_along_axis(log_probs, (y - 1)[:, None], axis=-1)[
            :, 0
        ]
        if weights is not None:
            log_lik = weights * log_lik
        numpyro.factor("log_lik", jnp.sum(log_lik))

    # Generated quantities
    zeta = cutpoints + jnp.dot(xbar, beta)
    numpyro.deterministic("zeta", -zeta if J == 2 else zeta)

    probs = jnp.exp(log_probs)
    if J > 2:
        numpyro.deterministic("mean_PPD", jnp.mean(probs, axis=0))
    else:
        numpyro.deterministic("mean_PPD", jnp.mean(probs[:, 1]))

    if do_residuals:
        expected = probs @ jnp.arange(1, J + 1, dtype=probs.dtype)
        numpyro.deterministic("residuals", y - expected)


# ------------------------------------------------------------------------------


def model_sites(model, **model_kwargs) -> Tuple[List[str], List[str]]:
    """Names of the latent and deterministic sites of a model, in order."""
    trace = handlers.trace(handlers.seed(model, rng_seed=0)).get_trace(
        **model_kwargs
    )
    latent = [
        name
        for name, site in trace.items()
        if site["type"] == "sample" and not site["is_observed"]
    ]
    deterministic = [
        name for name, site in trace.items() if site["type"] == "deterministic"
    ]
    return latent, deterministic
