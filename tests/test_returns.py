"""Tests for src.analysis.returns -- rolling returns, CAGR and SIP."""

from datetime import date

import pytest

from src.analysis.nav_series import NavSeries
from src.analysis.returns import (
    calculate_cagr,
    calculate_period_return,
    calculate_rolling_returns,
    calculate_sip_return,
    sip_purchase_navs,
)

from conftest import make_fund, monthly_nav_history


class TestPeriodReturn:

    def test_three_month_scenario(self):
        navs = NavSeries.from_mapping({"2023-01-01": 100, "2023-04-01": 110})
        assert calculate_period_return(navs, 3) == 10.0

    def test_horizon_beyond_history_is_none(self):
        navs = NavSeries.from_mapping({"2023-01-01": 100, "2023-04-01": 110})
        assert calculate_period_return(navs, 6) is None
        assert calculate_period_return(navs, 60) is None

    def test_uses_floor_nav(self):
        navs = NavSeries.from_mapping({"2023-01-01": 100, "2023-01-20": 105, "2023-02-15": 120})
        # target 2023-01-15 -> floor is 2023-01-01
        assert calculate_period_return(navs, 1) == 20.0

    def test_ceiling_within_grace(self):
        navs = NavSeries.from_mapping({"2023-01-05": 100, "2023-04-01": 90})
        # target 2023-01-01, first point four days later
        assert calculate_period_return(navs, 3) == -10.0

    def test_sparse_history_beyond_grace(self):
        navs = NavSeries.from_mapping({"2023-01-20": 100, "2023-03-01": 105, "2023-04-01": 110})
        # target 2023-01-01, first point nineteen days later
        assert calculate_period_return(navs, 3) is None
        assert calculate_period_return(navs, 3, grace_days=None) == 10.0

    def test_rounded_to_two_decimals(self):
        navs = NavSeries.from_mapping({"2023-01-01": 3, "2023-02-01": 4})
        assert calculate_period_return(navs, 1) == 33.33

    def test_empty_series(self):
        assert calculate_period_return(NavSeries(), 1) is None


class TestCagr:

    def test_doubling_over_two_years(self):
        navs = NavSeries.from_mapping({"2020-01-01": 100, "2022-01-01": 200})
        years = (date(2022, 1, 1) - date(2020, 1, 1)).days / 365.25
        expected = round((2 ** (1 / years) - 1) * 100, 2)
        assert calculate_cagr(navs) == expected

    def test_requires_one_year(self):
        navs = NavSeries.from_mapping({"2023-01-01": 100, "2023-10-01": 120})
        assert calculate_cagr(navs) is None

    def test_requires_two_points(self):
        assert calculate_cagr(NavSeries.from_mapping({"2023-01-01": 100})) is None


class TestSip:

    def test_flat_nav_has_zero_return(self):
        navs = NavSeries.from_mapping(monthly_nav_history(months=40, returns=[0.0] * 39))
        assert calculate_sip_return(navs) == 0.0

    def test_rising_nav_has_positive_return(self):
        navs = NavSeries.from_mapping(monthly_nav_history(months=40))
        assert calculate_sip_return(navs) > 0

    def test_one_purchase_per_month_in_window(self):
        navs = NavSeries.from_mapping(monthly_nav_history(months=40))
        # 36-month window inclusive of both ends
        assert len(sip_purchase_navs(navs, 36)) == 37

    def test_known_value(self):
        navs = NavSeries.from_mapping(monthly_nav_history(start="2022-01", months=13, returns=[0.0] * 11 + [0.1]))
        # 12 instalments: window starts 2022-01-01, last NAV is 10% higher
        purchases = sip_purchase_navs(navs, 12)
        assert len(purchases) == 13
        units = sum(1000 / p for p in purchases)
        expected = round((units * navs.latest_nav - 13000) / 13000 * 100, 2)
        assert calculate_sip_return(navs, 12) == expected

    def test_too_few_points(self):
        navs = NavSeries.from_mapping(monthly_nav_history(months=11))
        assert calculate_sip_return(navs) is None

    def test_too_few_usable_months(self):
        # 20 daily points inside a single month
        raw = {f"2023-01-{d:02d}": 100 + d for d in range(1, 21)}
        assert calculate_sip_return(NavSeries.from_mapping(raw)) is None


class TestRollingReturnsReport:

    def test_full_report(self):
        fund = make_fund("F", "Fund F", navHistory=monthly_nav_history(months=61))
        report = calculate_rolling_returns(fund)
        assert report.return_1m == 1.0
        assert report.return_1y == pytest.approx(round((1.01 ** 12 - 1) * 100, 2))
        assert report.return_5y is not None
        assert report.lump_sum_return_3y == report.return_3y
        assert report.sip_return_3y is not None
        assert report.cagr is not None
        assert report.as_of == date(2024, 1, 1)

    def test_short_history_leaves_long_horizons_empty(self):
        fund = make_fund("F", navHistory={"2023-01-01": 100, "2023-04-01": 110})
        report = calculate_rolling_returns(fund)
        assert report.return_3m == 10.0
        assert report.return_1y is None
        assert report.return_5y is None
        assert report.cagr is None
        assert report.sip_return_3y is None

    def test_empty_fund(self, empty_fund):
        report = calculate_rolling_returns(empty_fund)
        d = report.to_dict()
        assert d["fund_id"] == "FUND_EMPTY"
        assert all(d[k] is None for k in d if k not in ("fund_id", "fund_name"))
