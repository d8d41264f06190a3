"""
Model programs for bpolr.

The proportional-odds program is registered under ``"polr"`` and retrieved
through :func:`get_model`.
"""

from .model_registry import register, get_model, list_models
from .links import get_link, make_cutpoints, category_probabilities
from .polr import polr_model, model_sites

__all__ = [
    # Registry
    "register",
    "get_model",
    "list_models",
    # Links
    "get_link",
    "make_cutpoints",
    "category_probabilities",
    # Programs
    "polr_model",
    "model_sites",
]
