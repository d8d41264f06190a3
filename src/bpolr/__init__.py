"""
bpolr: Bayesian proportional-odds regression

Fits ordinal (and binary) regression models with an R2 prior on the
coefficients and a Dirichlet prior on the outcome proportions, by NUTS
sampling or by a variational approximation in NumPyro.
"""

# Import configuration classes
from .config import (
    MCMCConfig,
    VIConfig,
    InferenceConfig,
    Link,
    Algorithm,
)

# Import prior constructors
from .priors import R2, dirichlet, summarize_polr_prior

# Import main inference function
from .inference import fit_polr, create_default_inference_config

# Import results class
from .results import PolrFit

__version__ = "0.1.0"

__all__ = [
    # Configuration classes
    "MCMCConfig",
    "VIConfig",
    "InferenceConfig",
    "Link",
    "Algorithm",
    # Priors
    "R2",
    "dirichlet",
    "summarize_polr_prior",
    # Main inference function
    "fit_polr",
    "create_default_inference_config",
    # Results class
    "PolrFit",
]
