"""Model registry for bpolr model programs.

Model functions self-register through the ``register`` decorator and are
retrieved by name with ``get_model``. The fitting code only ever sees the
registered callable, so an alternative program with the same keyword
interface can be swapped in without touching the dispatch layer.

Examples
--------
>>> from bpolr.models import get_model
>>> model = get_model("polr")
"""

import importlib
from typing import Callable, Dict, List

# ------------------------------------------------------------------------------
# Model registry - Decorator-based registration system
# ------------------------------------------------------------------------------

_MODEL_REGISTRY: Dict[str, Callable] = {}

# Modules whose import populates the registry
_MODEL_MODULES = ["bpolr.models.polr"]


def register(name: str):
    """
    Decorator to register a model function in the global registry.

    Parameters
    ----------
    name : str
        Registry key of the model program.

    Returns
    -------
    Callable
        Decorator that registers and returns the function unchanged.

    Raises
    ------
    ValueError
        If another function is already registered under ``name``.
    """

    def decorator(func: Callable) -> Callable:
        # Re-importing a module re-registers the same function
        existing = _MODEL_REGISTRY.get(name)
        if existing is not None and existing.__qualname__ != func.__qualname__:
            raise ValueError(f"Model '{name}' is already registered")
        _MODEL_REGISTRY[name] = func
        return func

    return decorator


# ------------------------------------------------------------------------------


def _ensure_models_loaded() -> None:
    for module in _MODEL_MODULES:
        importlib.import_module(module)


def list_models() -> List[str]:
    """Names of all registered model programs."""
    _ensure_models_loaded()
    return sorted(_MODEL_REGISTRY)


def get_model(name: str = "polr") -> Callable:
    """Retrieve a registered model program by name.

    Raises
    ------
    ValueError
        If no model is registered under ``name``.
    """
    _ensure_models_loaded()
    try:
        return _MODEL_REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"No model registered under '{name}'. "
            f"Registered models: {sorted(_MODEL_REGISTRY)}"
        ) from None
