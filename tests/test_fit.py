"""Integration tests running short NUTS and variational fits."""

import pickle

import numpy as np
import pytest

import bpolr
from bpolr.config import Algorithm

# Short runs: enough to exercise the engines, not to converge
SAMPLING_SETTINGS = dict(
    n_warmup=50, n_samples=20, n_chains=1, progress_bar=False
)
VI_SETTINGS = dict(n_steps=300, n_draws=25, tol_rel_obj=None, progress=False)


@pytest.fixture(scope="module")
def ordinal_fit(ordinal_data):
    x, y = ordinal_data
    return bpolr.fit_polr(
        x, y, prior=bpolr.R2(0.3, "mean"), seed=1, **SAMPLING_SETTINGS
    )


# ------------------------------------------------------------------------------


class TestSampling:
    """Test NUTS fits."""

    def test_names_and_shapes(self, ordinal_fit):
        assert ordinal_fit.names[:4] == ["age", "dose", "low|mid", "mid|high"]
        assert ordinal_fit.algorithm == Algorithm.SAMPLING
        assert (ordinal_fit.n_chains, ordinal_fit.n_draws) == (1, 20)
        for values in ordinal_fit.draws.values():
            assert values.shape == (1, 20)
            assert np.all(np.isfinite(values))

    def test_cutpoints_ordered(self, ordinal_fit):
        lower = ordinal_fit.draws["low|mid"]
        upper = ordinal_fit.draws["mid|high"]
        assert np.all(lower < upper)

    def test_mean_ppd_is_simplex(self, ordinal_fit):
        total = sum(
            ordinal_fit.draws[f"mean_PPD:{level}"]
            for level in ["low", "mid", "high"]
        )
        np.testing.assert_allclose(total, 1.0, atol=1e-4)

    def test_residuals(self, ordinal_fit, ordinal_data):
        _, y = ordinal_data
        assert ordinal_fit.residuals.shape == (1, 20, len(y))

    def test_log_posterior(self, ordinal_fit):
        assert ordinal_fit.log_posterior().shape == (1, 20)
        assert ordinal_fit.divergences is not None

    def test_prior_summary(self, ordinal_fit):
        summary = ordinal_fit.prior_summary()
        assert summary["prior"]["dist"] == "R2"
        assert summary["prior"]["what"] == "mean"

    def test_pickle_drops_engine(self, ordinal_fit):
        restored = pickle.loads(pickle.dumps(ordinal_fit))

        assert restored.raw is None
        assert restored.names == ordinal_fit.names
        np.testing.assert_array_equal(
            restored.draws["age"], ordinal_fit.draws["age"]
        )

    def test_binary_probit(self, binary_data):
        x, y = binary_data
        fit = bpolr.fit_polr(
            x, y, prior=None, method="probit", **SAMPLING_SETTINGS
        )

        assert fit.names == [
            "(Intercept)",
            "score",
            "mean_PPD",
            "log-posterior",
        ]
        assert np.all((fit.draws["mean_PPD"] > 0) & (fit.draws["mean_PPD"] < 1))

    def test_binary_scobit(self, binary_data):
        x, y = binary_data
        fit = bpolr.fit_polr(
            x, y, prior=None, shape=2.0, rate=2.0, **SAMPLING_SETTINGS
        )
        assert np.all(fit.draws["alpha"] > 0)

    def test_prior_predictive(self, ordinal_data):
        x, y = ordinal_data
        fit = bpolr.fit_polr(
            x,
            y,
            prior=bpolr.R2(0.5, "median"),
            prior_PD=True,
            **SAMPLING_SETTINGS,
        )
        assert fit.residuals is None

    @pytest.mark.slow
    def test_recovers_sign_of_effects(self, ordinal_data):
        x, y = ordinal_data
        fit = bpolr.fit_polr(
            x,
            y,
            prior=bpolr.R2(0.3, "mean"),
            n_warmup=500,
            n_samples=500,
            n_chains=2,
            progress_bar=False,
        )
        assert fit.coefficients["age"] > 0
        assert fit.coefficients["dose"] < 0


# ------------------------------------------------------------------------------


class TestVariational:
    """Test mean-field and full-rank fits."""

    @pytest.mark.parametrize("algorithm", ["meanfield", "fullrank"])
    def test_fit(self, ordinal_data, algorithm):
        x, y = ordinal_data
        fit = bpolr.fit_polr(
            x,
            y,
            prior=bpolr.R2(0.3, "mean"),
            algorithm=algorithm,
            **VI_SETTINGS,
        )

        assert fit.algorithm == Algorithm(algorithm)
        assert (fit.n_chains, fit.n_draws) == (1, 25)
        assert fit.losses.shape == (300,)
        assert fit.residuals is None
        assert np.all(np.isfinite(fit.log_posterior()))
        assert "n_eff" not in fit.summary().columns

    def test_residuals_on_request(self, ordinal_data):
        x, y = ordinal_data
        fit = bpolr.fit_polr(
            x,
            y,
            prior=None,
            algorithm="meanfield",
            do_residuals=True,
            **VI_SETTINGS,
        )
        assert fit.residuals.shape == (1, 25, len(y))

    def test_not_converged_warns(self, ordinal_data):
        x, y = ordinal_data
        with pytest.warns(UserWarning, match="did not converge"):
            bpolr.fit_polr(
                x,
                y,
                prior=None,
                algorithm="meanfield",
                n_steps=20,
                eval_elbo=10,
                tol_rel_obj=1e-12,
                n_draws=5,
                progress=False,
            )
