"""
Shared test fixtures and configuration for bpolr tests.
"""

import pytest
import numpy as np
import pandas as pd
import os


def pytest_addoption(parser):
    parser.addoption(
        "--device",
        default="cpu",
        choices=["cpu", "gpu"],
        help="Device to run tests on: cpu or gpu",
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow integration tests",
    )


def pytest_configure(config):
    """Configure JAX device before any imports happen."""
    device = config.getoption("--device")
    if device == "cpu":
        os.environ["JAX_PLATFORM_NAME"] = "cpu"
    else:
        # Remove the environment variable to allow JAX to use GPU
        if "JAX_PLATFORM_NAME" in os.environ:
            del os.environ["JAX_PLATFORM_NAME"]
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (skip unless --run-slow)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is specified."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(scope="session")
def device_type(request):
    return request.config.getoption("--device")


# ------------------------------------------------------------------------------
# Datasets
# ------------------------------------------------------------------------------


@pytest.fixture(scope="session")
def ordinal_data():
    """Three ordered levels, two predictors, 60 observations."""
    rng = np.random.default_rng(42)
    n_obs = 60
    x = pd.DataFrame(
        {"age": rng.normal(size=n_obs), "dose": rng.normal(size=n_obs)}
    )
    latent = 1.0 * x["age"] - 0.5 * x["dose"] + rng.logistic(size=n_obs)
    codes = np.digitize(latent, [-0.5, 0.8])
    y = pd.Categorical.from_codes(
        codes, categories=["low", "mid", "high"], ordered=True
    )
    return x, y


@pytest.fixture(scope="session")
def binary_data():
    """Two ordered levels, one predictor, 50 observations."""
    rng = np.random.default_rng(7)
    n_obs = 50
    x = pd.DataFrame({"score": rng.normal(size=n_obs)})
    latent = 1.2 * x["score"] + rng.logistic(size=n_obs)
    y = pd.Categorical.from_codes(
        (latent > 0).astype(int), categories=["no", "yes"], ordered=True
    )
    return x, y
