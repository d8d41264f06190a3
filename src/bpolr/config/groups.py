"""
Parameter group definitions for inference configuration using Pydantic for
type safety and validation.

Each group collects the settings of one estimation route (NUTS sampling or a
variational approximation). Groups are immutable and reject unknown fields,
so a misspelled setting fails loudly instead of being silently ignored.
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .enums import Algorithm

# ==============================================================================
# MCMC Configuration Group
# ==============================================================================


class MCMCConfig(BaseModel):
    """Configuration for NUTS sampling."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    n_samples: int = Field(
        1_000, gt=0, description="Number of post-warmup draws per chain"
    )
    n_warmup: int = Field(1_000, ge=0, description="Number of warmup draws")
    n_chains: int = Field(4, gt=0, description="Number of chains")
    chain_method: str = Field(
        "sequential",
        description="How chains are run: 'sequential', 'parallel' or "
        "'vectorized'",
    )
    adapt_delta: Optional[float] = Field(
        None,
        gt=0,
        lt=1,
        description="Target acceptance probability (defaults depend on prior)",
    )
    max_tree_depth: Optional[int] = Field(
        None, gt=0, description="Maximum NUTS tree depth (defaults to 15)"
    )
    progress_bar: bool = Field(True, description="Show the sampler progress")
    mcmc_kwargs: Optional[Dict[str, Any]] = Field(
        None, description="Additional keyword arguments for the NUTS kernel"
    )

    @field_validator("chain_method")
    @classmethod
    def validate_chain_method(cls, v: str) -> str:
        """Validate chain method name."""
        valid = {"sequential", "parallel", "vectorized"}
        if v not in valid:
            raise ValueError(f"Invalid chain_method: {v}. Must be one of {valid}")
        return v


# ==============================================================================
# Variational Inference Configuration Group
# ==============================================================================


class VIConfig(BaseModel):
    """Configuration for the variational approximation."""

    model_config = ConfigDict(
        frozen=True, arbitrary_types_allowed=True, extra="forbid"
    )

    optimizer: Optional[Any] = Field(
        None, description="NumPyro optimizer (defaults to Adam(step_size))"
    )
    loss: Optional[Any] = Field(
        None, description="ELBO estimator (defaults to Trace_ELBO)"
    )
    n_steps: int = Field(
        10_000, gt=0, description="Maximum number of optimization steps"
    )
    n_draws: int = Field(
        1_000, gt=0, description="Draws taken from the fitted approximation"
    )
    step_size: float = Field(0.01, gt=0, description="Adam step size")
    eval_elbo: int = Field(
        100, gt=0, description="Steps between convergence checks"
    )
    tol_rel_obj: Optional[float] = Field(
        0.01,
        gt=0,
        description="Relative ELBO tolerance; None runs all n_steps",
    )
    stable_update: bool = Field(
        True, description="Skip updates that produce non-finite losses"
    )
    progress: bool = Field(True, description="Show the optimization progress")


# ==============================================================================
# Unified Inference Configuration
# ==============================================================================


class InferenceConfig(BaseModel):
    """Unified inference configuration.

    Holds the estimation ``method`` together with the group matching it.
    Use the ``from_mcmc`` and ``from_vi`` factories rather than building it
    by hand.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Algorithm = Field(..., description="Estimation algorithm")
    mcmc: Optional[MCMCConfig] = Field(None, description="NUTS settings")
    vi: Optional[VIConfig] = Field(None, description="Variational settings")

    @model_validator(mode="after")
    def validate_method_config(self) -> "InferenceConfig":
        """Validate that the group required by ``method`` is present."""
        if self.method == Algorithm.SAMPLING and self.mcmc is None:
            raise ValueError("MCMCConfig required for sampling")
        if self.method.is_variational and self.vi is None:
            raise ValueError(
                f"VIConfig required for {self.method.value} inference"
            )
        return self

    # --------------------------------------------------------------------------

    @classmethod
    def from_mcmc(cls, mcmc_config: MCMCConfig) -> "InferenceConfig":
        """Create an InferenceConfig for NUTS sampling."""
        return cls(method=Algorithm.SAMPLING, mcmc=mcmc_config)

    # --------------------------------------------------------------------------

    @classmethod
    def from_vi(
        cls, vi_config: VIConfig, algorithm: str = "meanfield"
    ) -> "InferenceConfig":
        """Create an InferenceConfig for a variational approximation."""
        algorithm = Algorithm(algorithm)
        if not algorithm.is_variational:
            raise ValueError(
                f"Algorithm '{algorithm.value}' is not variational"
            )
        return cls(method=algorithm, vi=vi_config)

    # --------------------------------------------------------------------------

    def get_config(self):
        """Return the group used by ``method``."""
        if self.method == Algorithm.SAMPLING:
            return self.mcmc
        return self.vi

    # --------------------------------------------------------------------------

    def with_updates(self, **settings) -> "InferenceConfig":
        """Return a copy whose active group has ``settings`` applied."""
        if not settings:
            return self
        if self.method == Algorithm.SAMPLING:
            return self.model_copy(
                update={"mcmc": _validated_copy(self.mcmc, settings)}
            )
        return self.model_copy(update={"vi": _validated_copy(self.vi, settings)})


def _validated_copy(group: BaseModel, settings: Dict[str, Any]) -> BaseModel:
    """Copy a group with ``settings`` applied, re-running validation."""
    return group.__class__(**{**group.model_dump(), **settings})
