"""Tests for response encoding, QR decorrelation and argument preparation."""

import numpy as np
import pandas as pd
import pytest

from bpolr.config.enums import Algorithm, Link
from bpolr.preprocessing import (
    INTERCEPT_NAME,
    as_design_matrix,
    encode_response,
    prepare_offset,
    prepare_prior,
    prepare_prior_counts,
    prepare_scobit,
    prepare_weights,
    qr_decorrelate,
    resolve_do_residuals,
)
from bpolr.priors import R2, dirichlet


# --------------------------------------------------------------------------
# Response
# --------------------------------------------------------------------------


class TestEncodeResponse:
    """Test encoding of the categorical response."""

    def test_ordered_categorical(self):
        y = pd.Categorical(
            ["b", "a", "c", "a"], categories=["a", "b", "c"], ordered=True
        )
        levels, J, codes = encode_response(y)

        assert levels == ["a", "b", "c"]
        assert J == 3
        np.testing.assert_array_equal(codes, [2, 1, 3, 1])
        assert codes.dtype == np.int32

    def test_categorical_series(self):
        y = pd.Series(["lo", "hi", "lo"]).astype(
            pd.CategoricalDtype(["lo", "hi"], ordered=True)
        )
        levels, J, codes = encode_response(y)

        assert levels == ["lo", "hi"]
        assert J == 2
        np.testing.assert_array_equal(codes, [1, 2, 1])

    def test_unobserved_levels_count(self):
        y = pd.Categorical(["a", "a"], categories=["a", "b", "c"], ordered=True)
        _, J, _ = encode_response(y)
        assert J == 3

    def test_unordered_warns(self):
        y = pd.Categorical(["a", "b"], categories=["a", "b"])
        with pytest.warns(UserWarning, match="unordered"):
            encode_response(y)

    def test_not_categorical(self):
        with pytest.raises(ValueError, match="must be a categorical"):
            encode_response(np.array([1, 2, 3]))

    def test_missing_values(self):
        y = pd.Categorical(["a", None, "b"], categories=["a", "b"], ordered=True)
        with pytest.raises(ValueError, match="missing values"):
            encode_response(y)

    def test_single_level(self):
        y = pd.Categorical(["a", "a"], categories=["a"], ordered=True)
        with pytest.raises(ValueError, match="at least 2"):
            encode_response(y)


# --------------------------------------------------------------------------
# Design Matrix
# --------------------------------------------------------------------------


class TestAsDesignMatrix:
    """Test coercion of the predictors."""

    def test_dataframe_names(self):
        x = pd.DataFrame({"a": [1.0, 2.0], "b": [3.0, 5.0]})
        values, names = as_design_matrix(x)

        assert names == ["a", "b"]
        assert values.shape == (2, 2)

    def test_intercept_dropped(self):
        x = pd.DataFrame(
            {INTERCEPT_NAME: [1.0, 1.0, 1.0], "a": [0.0, 1.0, 2.0]}
        )
        values, names = as_design_matrix(x)

        assert names == ["a"]
        np.testing.assert_array_equal(values[:, 0], [0.0, 1.0, 2.0])

    def test_array_names(self):
        _, names = as_design_matrix(np.zeros((4, 3)))
        assert names == ["x1", "x2", "x3"]

    def test_vector_is_one_column(self):
        values, names = as_design_matrix([1.0, 2.0, 3.0])
        assert values.shape == (3, 1)
        assert names == ["x1"]

    def test_non_finite(self):
        with pytest.raises(ValueError, match="missing or infinite"):
            as_design_matrix(np.array([[1.0], [np.nan]]))


# ------------------------------------------------------------------------------


class TestQRDecorrelate:
    """Test centring and orthogonalization of the design."""

    @pytest.fixture
    def x(self):
        rng = np.random.default_rng(0)
        return rng.normal(loc=2.0, size=(40, 3)) @ np.array(
            [[1.0, 0.5, 0.0], [0.0, 1.0, 0.3], [0.0, 0.0, 1.0]]
        )

    def test_orthonormal_columns(self, x):
        design = qr_decorrelate(x)

        assert design.N == 40
        assert design.K == 3
        np.testing.assert_allclose(design.Q.T @ design.Q, np.eye(3), atol=1e-10)

    def test_reconstructs_centred_design(self, x):
        design = qr_decorrelate(x)
        R = np.linalg.inv(design.R_inv)

        np.testing.assert_allclose(design.xbar, x.mean(axis=0))
        np.testing.assert_allclose(design.Q @ R, x - x.mean(axis=0), atol=1e-10)

    def test_linear_predictor_preserved(self, x):
        design = qr_decorrelate(x)
        theta = np.array([0.3, -1.2, 0.7])
        beta = design.R_inv @ theta

        np.testing.assert_allclose(
            (x - design.xbar) @ beta, design.Q @ theta, atol=1e-10
        )

    def test_transformed_centre(self, x):
        design = qr_decorrelate(x)
        np.testing.assert_allclose(
            design.xbar_transformed, design.xbar @ design.R_inv
        )

    def test_single_column(self):
        x = np.arange(10.0)[:, None]
        design = qr_decorrelate(x, ["t"])

        assert design.column_names == ["t"]
        assert design.R_inv.shape == (1, 1)
        assert design.xbar_transformed.shape == (1,)

    def test_no_predictors(self):
        design = qr_decorrelate(np.zeros((5, 0)))

        assert design.K == 0
        assert design.Q.shape == (5, 0)
        assert design.R_inv.shape == (0, 0)

    def test_collinear_columns(self, x):
        x = np.column_stack([x, 2.0 * x[:, 0]])
        with pytest.raises(ValueError, match="rank deficient"):
            qr_decorrelate(x)

    def test_constant_column(self, x):
        x = np.column_stack([x, np.full(x.shape[0], 3.0)])
        with pytest.raises(ValueError, match="rank deficient"):
            qr_decorrelate(x)


# --------------------------------------------------------------------------
# Weights, Offsets, Priors
# --------------------------------------------------------------------------


class TestWeightsAndOffsets:
    """Test normalization of observation weights and offsets."""

    def test_absent_weights(self):
        has_weights, weights = prepare_weights(None, 3)
        assert not has_weights
        assert weights.size == 0

    def test_unit_weights_are_absent(self):
        has_weights, _ = prepare_weights([1.0, 1.0, 1.0], 3)
        assert not has_weights

    def test_weights(self):
        has_weights, weights = prepare_weights([1.0, 2.0, 0.0], 3)
        assert has_weights
        np.testing.assert_array_equal(weights, [1.0, 2.0, 0.0])

    def test_negative_weights(self):
        with pytest.raises(ValueError, match="non-negative"):
            prepare_weights([1.0, -1.0, 1.0], 3)

    def test_weights_length(self):
        with pytest.raises(ValueError, match="one value per observation"):
            prepare_weights([2.0, 1.0], 3)

    def test_zero_offset_is_absent(self):
        has_offset, offset = prepare_offset(np.zeros(4), 4)
        assert not has_offset
        assert offset.size == 0

    def test_offset(self):
        has_offset, offset = prepare_offset([0.5, 0.0], 2)
        assert has_offset
        np.testing.assert_array_equal(offset, [0.5, 0.0])


# ------------------------------------------------------------------------------


class TestPreparePriors:
    """Test conversion of prior objects to data-record fields."""

    def test_flat_prior(self):
        assert prepare_prior(None, K=2) == (0, 0.0)

    def test_r2_prior(self):
        prior_dist, eta = prepare_prior(R2(0.5, "mean"), K=2)
        assert prior_dist == 1
        assert eta == pytest.approx(1.0)

    def test_wrong_prior_type(self):
        with pytest.raises(ValueError, match="must be an R2 prior"):
            prepare_prior(dirichlet(1), K=2)

    def test_default_prior_counts(self):
        np.testing.assert_array_equal(prepare_prior_counts(None, 4), np.ones(4))

    def test_recycled_prior_counts(self):
        np.testing.assert_array_equal(
            prepare_prior_counts(dirichlet(2), 3), np.full(3, 2.0)
        )

    def test_wrong_prior_counts_type(self):
        with pytest.raises(ValueError, match="Dirichlet prior"):
            prepare_prior_counts(R2(0.5), 3)


# ------------------------------------------------------------------------------


class TestPrepareScobit:
    """Test validation of the scobit exponent prior."""

    def test_not_skewed_by_default(self):
        assert prepare_scobit(None, None, 2, Link.LOGISTIC) == (0.0, 0.0, False)

    def test_skewed(self):
        shape, rate, is_skewed = prepare_scobit(2.0, 1.0, 2, Link.LOGISTIC)
        assert (shape, rate, is_skewed) == (2.0, 1.0, True)

    def test_shape_only_is_not_skewed(self):
        _, _, is_skewed = prepare_scobit(2.0, None, 2, Link.LOGISTIC)
        assert not is_skewed

    def test_more_than_two_categories(self):
        with pytest.raises(ValueError, match="more than 2 outcome categories"):
            prepare_scobit(2.0, 1.0, 3, Link.LOGISTIC)

    def test_non_positive(self):
        with pytest.raises(ValueError, match="'rate' must be positive"):
            prepare_scobit(2.0, -1.0, 2, Link.LOGISTIC)

    def test_logistic_only(self):
        with pytest.raises(ValueError, match="method = 'logistic'"):
            prepare_scobit(2.0, 1.0, 2, Link.PROBIT)


# ------------------------------------------------------------------------------


class TestResolveDoResiduals:
    """Test the residual switch."""

    def test_default_on_for_sampling(self):
        assert resolve_do_residuals(None, Algorithm.SAMPLING, 3, False)

    def test_default_off_for_variational(self):
        assert not resolve_do_residuals(None, Algorithm.MEANFIELD, 3, False)

    def test_requested_for_variational(self):
        assert resolve_do_residuals(True, Algorithm.FULLRANK, 3, False)

    def test_binary_outcome(self):
        assert not resolve_do_residuals(True, Algorithm.SAMPLING, 2, False)

    def test_prior_predictive(self):
        assert not resolve_do_residuals(True, Algorithm.SAMPLING, 4, True)
