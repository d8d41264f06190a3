"""
Configuration system for bpolr fits.

Uses Pydantic for validation and enums for type safety. All configs are
immutable by default.
"""

from .enums import Link, Algorithm, PriorFamily
from .groups import MCMCConfig, VIConfig, InferenceConfig

__all__ = [
    # Config types
    "MCMCConfig",
    "VIConfig",
    "InferenceConfig",
    # Enums
    "Link",
    "Algorithm",
    "PriorFamily",
]
