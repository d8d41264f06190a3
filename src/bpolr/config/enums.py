"""
Enums and constants for fitting configuration.

Enums restrict the configurable aspects of a fit (link function, estimation
algorithm, prior family labels) to a fixed set of valid choices, so that
invalid values are rejected at construction time rather than deep inside the
engine.
"""

from enum import Enum

# ==============================================================================
# Enums for fitting configuration
# ==============================================================================


class Link(str, Enum):
    """Supported link functions for the cumulative model."""

    LOGISTIC = "logistic"
    PROBIT = "probit"
    LOGLOG = "loglog"
    CLOGLOG = "cloglog"
    CAUCHIT = "cauchit"

    @property
    def code(self) -> int:
        """Integer code of the link as stored in the data record (1-based)."""
        return list(Link).index(self) + 1


# ------------------------------------------------------------------------------


class Algorithm(str, Enum):
    """Supported estimation algorithms."""

    SAMPLING = "sampling"
    MEANFIELD = "meanfield"
    FULLRANK = "fullrank"

    @property
    def is_variational(self) -> bool:
        """Whether this algorithm is a variational approximation."""
        return self is not Algorithm.SAMPLING


# ------------------------------------------------------------------------------


class PriorFamily(str, Enum):
    """Prior distribution labels used in prior summaries."""

    R2 = "R2"
    DIRICHLET = "dirichlet"
    GAMMA = "gamma"
