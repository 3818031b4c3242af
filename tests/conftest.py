"""Shared pytest fixtures for the MF-Analyst test suite.

Provides synthetic fund documents and NAV histories with a fixed random
seed for reproducibility.  Nothing here touches the network or disk.
"""

import numpy as np
import pandas as pd
import pytest

from src.data_sources.fund_master import FundSnapshot


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def monthly_nav_history(start="2019-01", months=60, base=100.0, returns=None, fmt="%Y-%m-%d"):
    """Build a ``date-string -> nav`` mapping with one point per month.

    *returns* is a sequence of monthly simple returns applied after the
    first point; defaults to a flat 1% per month.
    """
    dates = pd.period_range(start=start, periods=months, freq="M").to_timestamp()
    if returns is None:
        returns = [0.01] * (months - 1)
    navs = [base]
    for r in returns[: months - 1]:
        navs.append(navs[-1] * (1 + r))
    return {d.strftime(fmt): round(v, 6) for d, v in zip(dates, navs)}


def make_fund(fund_id, name=None, **fields):
    """FundSnapshot from keyword fields in document (camelCase) form."""
    doc = {"fundId": fund_id, "fundName": name or fund_id}
    doc.update(fields)
    return FundSnapshot.from_document(doc)


# ---------------------------------------------------------------------------
# 1. Fund documents
# ---------------------------------------------------------------------------

@pytest.fixture
def fund_a():
    """Large-cap fund: Finance-heavy with two bank holdings."""
    return make_fund(
        "FUND_A", "Alpha Large Cap Fund",
        fundCategory="Large Cap",
        amcName="Alpha AMC",
        expenseRatio=0.8,
        directPlan=True,
        sectorAllocation={"Finance": 40.0, "IT": 20.0},
        topHoldings=[
            {"securityId": "HDFC", "securityName": "HDFC Bank", "weightPct": 10.0},
            {"securityId": "ICICI", "securityName": "ICICI Bank", "weightPct": 8.0},
            {"securityId": "TCS", "securityName": "Tata Consultancy", "weightPct": 5.0},
        ],
        navHistory=monthly_nav_history(),
        fundMetadata={"mstarpy_metadata": {"alpha": 2.5, "beta": 0.9, "sharpeRatio": 1.1, "stdev": 14.0}},
    )


@pytest.fixture
def fund_b():
    """Flexi-cap fund sharing both bank holdings with fund_a."""
    return make_fund(
        "FUND_B", "Beta Flexi Cap Fund",
        fundCategory="Flexi Cap",
        amcName="Beta AMC",
        expenseRatio=1.8,
        directPlan=False,
        sectorAllocation={"Finance": 50.0, "IT": 10.0},
        topHoldings=[
            {"securityId": "HDFC", "securityName": "HDFC Bank", "weightPct": 9.0},
            {"securityId": "ICICI", "securityName": "ICICI Bank", "weightPct": 6.0},
            {"securityId": "INFY", "securityName": "Infosys", "weightPct": 4.0},
        ],
        navHistory=monthly_nav_history(base=50.0, returns=[0.02, -0.01] * 30),
        fundMetadata={"risk_volatility": {"fund_risk_volatility": {"for3Year": {
            "alpha": -1.0, "beta": 1.3, "standardDeviation": 18.0}}}},
    )


@pytest.fixture
def empty_fund():
    """Fund with no holdings, no sectors, no NAV and no metadata."""
    return make_fund("FUND_EMPTY", "Empty Fund")


@pytest.fixture
def debt_fund():
    return make_fund(
        "FUND_DEBT", "Steady Corporate Bond Fund",
        fundCategory="Corporate Bond",
        amcName="Alpha AMC",
        expenseRatio=0.3,
        directPlan=True,
        navHistory=monthly_nav_history(base=20.0, returns=[0.005] * 59),
    )


@pytest.fixture
def two_fund_weights():
    return {"FUND_A": 0.6, "FUND_B": 0.4}


# ---------------------------------------------------------------------------
# 2. Random NAV history
# ---------------------------------------------------------------------------

@pytest.fixture
def random_nav_history():
    """72 monthly NAVs from seeded normal returns (mean 1%, std 4%)."""
    np.random.seed(42)
    returns = np.random.normal(0.01, 0.04, 71)
    return monthly_nav_history(start="2018-01", months=72, returns=list(returns))
