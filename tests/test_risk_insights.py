"""Tests for src.analysis.risk_insights -- metric extraction and labels."""

import pytest

from src.analysis.risk_insights import (
    alpha_insight,
    beta_insight,
    calculate_risk_insights,
    risk_label,
    volatility_level,
)

from conftest import make_fund


class TestLabels:

    @pytest.mark.parametrize("alpha, text", [
        (3.456, "Outperforms benchmark by 3.5% annually"),
        (1.0, "Slightly beats benchmark by 1.0% annually"),
        (0.0, "Slightly trails benchmark by 0.0% annually"),
        (-1.5, "Slightly trails benchmark by 1.5% annually"),
        (-2.0, "Underperforms benchmark by 2.0% annually"),
        (None, "Alpha data not available"),
    ])
    def test_alpha_insight(self, alpha, text):
        assert alpha_insight(alpha) == text

    @pytest.mark.parametrize("beta, text", [
        (0.5, "Lower volatility than market - defensive"),
        (0.8, "Market-aligned volatility"),
        (1.2, "Market-aligned volatility"),
        (1.21, "Higher volatility than market - aggressive"),
        (None, "Beta data not available"),
    ])
    def test_beta_insight(self, beta, text):
        assert beta_insight(beta) == text

    def test_volatility_from_beta_takes_priority(self):
        assert volatility_level(0.7, 30.0) == "LOW"
        assert volatility_level(1.5, 5.0) == "HIGH"
        assert volatility_level(1.0, 30.0) == "MARKET_ALIGNED"

    def test_volatility_from_std_dev(self):
        assert volatility_level(None, 10.0) == "LOW"
        assert volatility_level(None, 25.0) == "HIGH"
        assert volatility_level(None, 15.0) == "MARKET_ALIGNED"
        assert volatility_level(None, None) == "MARKET_ALIGNED"

    def test_risk_label(self):
        assert risk_label("LOW") == "Defensive"
        assert risk_label("HIGH") == "Aggressive"
        assert risk_label("MARKET_ALIGNED") == "Balanced"


class TestCalculateRiskInsights:

    def test_nested_metadata(self, fund_a):
        report = calculate_risk_insights(fund_a)
        assert report.alpha == 2.5
        assert report.beta == 0.9
        assert report.sharpe_ratio == 1.1
        assert report.std_dev == 14.0
        assert report.volatility_level == "MARKET_ALIGNED"
        assert report.overall_risk_label == "Balanced"

    def test_risk_volatility_path(self, fund_b):
        report = calculate_risk_insights(fund_b)
        assert report.beta == 1.3
        assert report.std_dev == 18.0
        assert report.sharpe_ratio is None
        assert report.overall_risk_label == "Aggressive"
        assert report.alpha_insight.startswith("Slightly trails")

    def test_defaults_fill_missing_metrics_independently(self):
        fund = make_fund("F", fundMetadata={"beta": 0.6})
        report = calculate_risk_insights(fund, defaults={"beta": 1.5, "std_dev": 11.0})
        assert report.beta == 0.6
        assert report.std_dev == 11.0
        assert report.alpha is None
        assert report.overall_risk_label == "Defensive"

    def test_no_metadata(self, empty_fund):
        report = calculate_risk_insights(empty_fund)
        d = report.to_dict()
        assert d["alpha"] is None
        assert d["alpha_insight"] == "Alpha data not available"
        assert d["volatility_level"] == "MARKET_ALIGNED"

    def test_unknown_default_raises(self, fund_a):
        with pytest.raises(ValueError, match="Unknown risk metric"):
            calculate_risk_insights(fund_a, defaults={"gamma": 1.0})
