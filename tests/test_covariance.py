"""Tests for src.analysis.covariance -- alignment, matrices, portfolio variance."""

import math

import numpy as np
import pytest

from src.analysis.covariance import (
    aligned_returns,
    calculate_portfolio_covariance,
    covariance_from_returns,
    estimate_covariance,
)

from conftest import make_fund, monthly_nav_history


def _fund(fund_id, returns, start="2020-01"):
    return make_fund(fund_id, navHistory=monthly_nav_history(start=start, months=len(returns) + 1, returns=returns))


class TestAlignment:

    def test_trims_to_most_recent_common_length(self):
        matrix, months = aligned_returns([np.array([1, 2, 3, 4]), np.array([7, 8])])
        assert months == 2
        assert matrix.tolist() == [[3, 4], [7, 8]]

    def test_any_empty_series_gives_zero_months(self):
        matrix, months = aligned_returns([np.array([1.0, 2.0]), np.array([])])
        assert months == 0
        assert matrix.shape == (2, 0)


class TestCovarianceFromReturns:

    def test_population_statistics(self):
        data = np.array([[0.01, 0.03, -0.02, 0.02], [0.02, 0.01, 0.00, 0.03]])
        means, std, cov, corr = covariance_from_returns(data)
        assert means == pytest.approx(data.mean(axis=1))
        assert std == pytest.approx(data.std(axis=1, ddof=0))
        assert cov == pytest.approx(np.cov(data, ddof=0))
        assert np.diag(cov) == pytest.approx(std ** 2)
        assert corr == pytest.approx(np.corrcoef(data))

    def test_zero_variance_gives_zero_correlation(self):
        data = np.array([[0.01, 0.01, 0.01], [0.02, -0.01, 0.03]])
        _, std, _, corr = covariance_from_returns(data)
        assert std[0] == 0.0
        assert corr[0, 1] == 0.0
        assert corr[0, 0] == 1.0


class TestPortfolioCovariance:

    def test_single_fund_round_trip(self):
        returns = [0.02, -0.01, 0.03, 0.00, 0.015, -0.005]
        report = calculate_portfolio_covariance([_fund("A", returns)], {"A": 1.0})
        variance = float(np.var(returns))
        est = estimate_covariance([_fund("A", returns)], {"A": 1.0})
        assert est.portfolio_variance == pytest.approx(variance, rel=1e-4)
        assert report.portfolio_variance == round(variance, 2)
        assert report.covariance_matrix[0][0] == pytest.approx(round(variance, 4))
        assert report.diversification_benefit == 0.0
        assert report.portfolio_std_dev == report.weighted_avg_std_dev

    def test_correlation_symmetric_with_unit_diagonal(self):
        np.random.seed(42)
        funds = [_fund(f"F{i}", list(np.random.normal(0.01, 0.04, 36))) for i in range(4)]
        report = calculate_portfolio_covariance(funds, {f"F{i}": 0.25 for i in range(4)})
        corr = np.array(report.correlation_matrix)
        assert np.diag(corr) == pytest.approx(np.ones(4))
        assert corr == pytest.approx(corr.T, abs=1e-4)
        assert np.all(np.abs(corr) <= 1.0)
        assert report.diversification_benefit >= 0

    def test_zero_covariance_portfolio_std_is_weighted_rss(self):
        # Orthogonal zero-mean patterns over four months
        a = [0.02, -0.02, 0.02, -0.02]
        b = [0.03, 0.03, -0.03, -0.03]
        funds = [_fund("A", a), _fund("B", b)]
        report = calculate_portfolio_covariance(funds, {"A": 0.5, "B": 0.5})
        assert report.covariance_matrix[0][1] == pytest.approx(0.0, abs=1e-12)
        expected = math.sqrt((0.5 * 0.02) ** 2 + (0.5 * 0.03) ** 2) * 100
        assert report.portfolio_std_dev == pytest.approx(round(expected, 2))
        assert report.weighted_avg_std_dev == pytest.approx(2.5)
        assert report.diversification_benefit > 0

    def test_positional_alignment_uses_shortest_history(self):
        long_fund = _fund("A", [0.01] * 24)
        short_fund = _fund("B", [0.02, -0.01, 0.01, 0.0, 0.01, 0.02], start="2021-06")
        report = calculate_portfolio_covariance([long_fund, short_fund], {"A": 0.5, "B": 0.5})
        assert report.months_used == 6
        assert report.fund_ids == ["A", "B"]
        assert report.calculation_method == "HISTORICAL_MONTHLY"

    def test_fund_without_history_zeroes_everything(self, fund_a, empty_fund):
        report = calculate_portfolio_covariance([fund_a, empty_fund], {"FUND_A": 0.5, "FUND_EMPTY": 0.5})
        assert report.months_used == 0
        assert report.covariance_matrix == [[0.0, 0.0], [0.0, 0.0]]
        assert report.correlation_matrix == [[1.0, 0.0], [0.0, 1.0]]
        assert report.portfolio_variance == 0.0
        assert report.diversification_benefit == 0.0

    def test_no_nan_in_report(self, fund_a):
        flat = make_fund("FLAT", navHistory=monthly_nav_history(months=24, returns=[0.0] * 23))
        report = calculate_portfolio_covariance([fund_a, flat], {"FUND_A": 0.5, "FLAT": 0.5})
        flat_values = np.array(report.correlation_matrix + report.covariance_matrix).ravel()
        assert not np.isnan(flat_values).any()
        assert report.fund_std_devs[1] == 0.0

    def test_estimate_exposes_unrounded_statistics(self, fund_a, fund_b, two_fund_weights):
        est = estimate_covariance([fund_a, fund_b], two_fund_weights)
        assert est.months_used == 59
        assert est.portfolio_variance == pytest.approx(
            float(est.weights @ est.covariance @ est.weights)
        )
        assert est.portfolio_mean == pytest.approx(0.6 * est.means[0] + 0.4 * est.means[1])

    def test_empty_fund_list_raises(self):
        with pytest.raises(ValueError, match="at least one fund"):
            calculate_portfolio_covariance([], {})

    def test_to_dict_is_plain(self, fund_a, fund_b, two_fund_weights):
        d = calculate_portfolio_covariance([fund_a, fund_b], two_fund_weights).to_dict()
        assert isinstance(d["covariance_matrix"][0][0], float)
        assert d["fund_names"] == ["Alpha Large Cap Fund", "Beta Flexi Cap Fund"]

    def test_portfolio_variance_is_a_two_decimal_scalar(self):
        returns = [0.05, -0.03] * 12
        report = calculate_portfolio_covariance([_fund("A", returns)], {"A": 1.0})
        est = estimate_covariance([_fund("A", returns)], {"A": 1.0})
        assert est.portfolio_variance == pytest.approx(0.0016, rel=1e-4)
        assert report.portfolio_variance == 0.0
        assert report.covariance_matrix[0][0] == pytest.approx(0.0016, rel=1e-4)
