"""
Link functions for cumulative ordinal models.

Each link is described by the CDF ``F`` of the latent error distribution and
its quantile function ``F^-1``. Category probabilities are differences of
``F`` evaluated at the cutpoints minus the linear predictor; cutpoints are
obtained from the cumulative category proportions through ``F^-1``.
"""

from typing import Callable, Dict, NamedTuple

import jax.numpy as jnp
from jax.nn import sigmoid
from jax.scipy.special import logit, ndtr, ndtri

from ..config.enums import Link

# ==============================================================================
# Link Definitions
# ==============================================================================


class LinkFunctions(NamedTuple):
    """CDF and quantile function of a latent error distribution."""

    cdf: Callable[[jnp.ndarray], jnp.ndarray]
    quantile: Callable[[jnp.ndarray], jnp.ndarray]


_LINKS: Dict[int, LinkFunctions] = {
    Link.LOGISTIC.code: LinkFunctions(cdf=sigmoid, quantile=logit),
    Link.PROBIT.code: LinkFunctions(cdf=ndtr, quantile=ndtri),
    # Gumbel (maximum) errors
    Link.LOGLOG.code: LinkFunctions(
        cdf=lambda x: jnp.exp(-jnp.exp(-x)),
        quantile=lambda p: -jnp.log(-jnp.log(p)),
    ),
    # Gumbel (minimum) errors
    Link.CLOGLOG.code: LinkFunctions(
        cdf=lambda x: -jnp.expm1(-jnp.exp(x)),
        quantile=lambda p: jnp.log(-jnp.log1p(-p)),
    ),
    Link.CAUCHIT.code: LinkFunctions(
        cdf=lambda x: 0.5 + jnp.arctan(x) / jnp.pi,
        quantile=lambda p: jnp.tan(jnp.pi * (p - 0.5)),
    ),
}


def get_link(link) -> LinkFunctions:
    """Look up a link by integer code, name or ``Link`` member."""
    if isinstance(link, str):
        link = Link(link).code
    link = int(link)
    if link not in _LINKS:
        raise ValueError(
            f"Unknown link code: {link}. Must be one of {sorted(_LINKS)}"
        )
    return _LINKS[link]


# ==============================================================================
# Cutpoints
# ==============================================================================


def make_cutpoints(pi: jnp.ndarray, scale, link) -> jnp.ndarray:
    """Cutpoints implied by category proportions ``pi`` on a given scale.

    Parameters
    ----------
    pi : jnp.ndarray
        Category proportions (a simplex of length ``J``).
    scale : float
        Standard deviation of the latent outcome relative to the error
        distribution.
    link : int, str or Link
        Link function.

    Returns
    -------
    jnp.ndarray
        The ``J - 1`` increasing cutpoints.
    """
    cumulative = jnp.cumsum(pi)[:-1]
    return scale * get_link(link).quantile(cumulative)


# ------------------------------------------------------------------------------


def category_probabilities(
    cutpoints: jnp.ndarray, eta: jnp.ndarray, link
) -> jnp.ndarray:
    """Probabilities of each of the ``J`` categories, shape ``(N, J)``."""
    cdf = get_link(link).cdf(cutpoints[None, :] - eta[:, None])
    n = eta.shape[0]
    cumulative = jnp.concatenate(
        [jnp.zeros((n, 1)), cdf, jnp.ones((n, 1))], axis=-1
    )
    return jnp.diff(cumulative, axis=-1)
