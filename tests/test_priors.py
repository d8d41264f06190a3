"""Tests for R2 and Dirichlet priors and the R2 calibration."""

import numpy as np
import pytest
from scipy import special, stats

from bpolr.priors import (
    R2,
    DirichletPrior,
    R2Prior,
    broadcast_concentration,
    dirichlet,
    make_eta,
    summarize_polr_prior,
)


class TestR2Prior:
    """Test construction and validation of R2 priors."""

    def test_defaults_to_mode(self):
        prior = R2(0.4)

        assert isinstance(prior, R2Prior)
        assert prior.location == 0.4
        assert prior.what == "mode"
        assert prior.dist == "R2"

    @pytest.mark.parametrize(
        "location, what",
        [(1.0, "mode"), (0.5, "mean"), (0.2, "median"), (-2.0, "log")],
    )
    def test_valid_locations(self, location, what):
        prior = R2(location, what=what)
        assert prior.what == what

    @pytest.mark.parametrize(
        "location, what",
        [
            (0.0, "mode"),
            (1.5, "mode"),
            (1.0, "mean"),
            (0.0, "median"),
            (0.3, "log"),
            (float("nan"), "mean"),
        ],
    )
    def test_invalid_locations(self, location, what):
        with pytest.raises(ValueError):
            R2(location, what=what)

    def test_invalid_summary(self):
        with pytest.raises(ValueError, match="Invalid 'what'"):
            R2(0.5, what="variance")

    def test_immutable(self):
        prior = R2(0.5)
        with pytest.raises(Exception):
            prior.location = 0.2


# ------------------------------------------------------------------------------


class TestDirichletPrior:
    """Test construction of Dirichlet priors."""

    def test_scalar(self):
        prior = dirichlet(2)
        assert isinstance(prior, DirichletPrior)
        assert prior.concentration == 2.0
        assert prior.dist == "dirichlet"

    def test_sequence_becomes_tuple(self):
        prior = dirichlet([1, 2, 3])
        assert prior.concentration == (1.0, 2.0, 3.0)

    @pytest.mark.parametrize("concentration", [0, -1.0, [1.0, 0.0]])
    def test_non_positive_rejected(self, concentration):
        with pytest.raises(ValueError, match="must be positive"):
            dirichlet(concentration)

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="at least one value"):
            dirichlet([])


# ------------------------------------------------------------------------------


class TestMakeEta:
    """Test calibration of the Beta(K/2, eta) prior on R2."""

    def test_mode(self):
        # Beta(2, 2) has its mode at 0.5
        assert make_eta(0.5, "mode", K=4) == pytest.approx(2.0)

    def test_mode_matches_beta_mode(self):
        K, location = 6, 0.3
        eta = make_eta(location, "mode", K=K)
        a = K / 2
        assert (a - 1) / (a + eta - 2) == pytest.approx(location)

    def test_mean(self):
        eta = make_eta(0.25, "mean", K=4)
        assert eta == pytest.approx(6.0)
        assert stats.beta.mean(2.0, eta) == pytest.approx(0.25)

    @pytest.mark.parametrize("K, location", [(1, 0.2), (3, 0.3), (10, 0.6)])
    def test_median(self, K, location):
        eta = make_eta(location, "median", K=K)
        assert eta > 0
        assert stats.beta.median(K / 2, eta) == pytest.approx(location, abs=1e-6)

    @pytest.mark.parametrize("K, location", [(2, -1.0), (5, -0.5)])
    def test_log(self, K, location):
        eta = make_eta(location, "log", K=K)
        expected_log = special.digamma(K / 2) - special.digamma(K / 2 + eta)
        assert expected_log == pytest.approx(location, abs=1e-6)

    @pytest.mark.parametrize("K", [1, 2])
    def test_mode_needs_three_predictors(self, K):
        with pytest.raises(ValueError, match="R2 has no mode"):
            make_eta(0.5, "mode", K=K)

    def test_no_predictors(self):
        with pytest.raises(ValueError, match="no covariates"):
            make_eta(0.5, "mean", K=0)

    def test_invalid_summary(self):
        with pytest.raises(ValueError, match="Invalid 'what'"):
            make_eta(0.5, "sd", K=3)

    def test_location_out_of_range(self):
        with pytest.raises(ValueError, match="must be negative"):
            make_eta(0.1, "log", K=3)


# ------------------------------------------------------------------------------


class TestBroadcastConcentration:
    """Test recycling of Dirichlet concentrations."""

    def test_scalar(self):
        np.testing.assert_array_equal(
            broadcast_concentration(2.0, 4), np.full(4, 2.0)
        )

    def test_one_per_category(self):
        values = broadcast_concentration((1.0, 2.0, 3.0), 3)
        np.testing.assert_array_equal(values, [1.0, 2.0, 3.0])

    def test_empty(self):
        np.testing.assert_array_equal(broadcast_concentration([], 3), np.zeros(3))

    def test_wrong_length(self):
        with pytest.raises(ValueError, match="length 1 or 3"):
            broadcast_concentration((1.0, 2.0), 3)


# ------------------------------------------------------------------------------


class TestSummarizePolrPrior:
    """Test the prior summary record."""

    def test_flat_prior(self):
        summary = summarize_polr_prior(None, np.ones(3))

        assert summary["prior"] == {"dist": None, "location": None, "what": None}
        assert summary["prior_counts"]["dist"] == "dirichlet"
        np.testing.assert_array_equal(
            summary["prior_counts"]["concentration"], np.ones(3)
        )
        assert "scobit_exponent" not in summary

    def test_r2_prior(self):
        summary = summarize_polr_prior(R2(0.3, "median"), np.full(4, 2.0))

        assert summary["prior"] == {
            "dist": "R2",
            "location": 0.3,
            "what": "median",
        }

    def test_scobit_exponent(self):
        summary = summarize_polr_prior(None, np.ones(2), shape=2.0, rate=1.5)
        assert summary["scobit_exponent"] == {
            "dist": "gamma",
            "shape": 2.0,
            "rate": 1.5,
        }

    def test_scobit_requires_both(self):
        summary = summarize_polr_prior(None, np.ones(2), shape=2.0, rate=0.0)
        assert "scobit_exponent" not in summary
