"""Historical return statistics from a fund's NAV history.

Rolling point-to-point returns over fixed month horizons, CAGR over the full
history and the return of a notional monthly SIP.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import pandas as pd

from src.config import section
from src.data_sources.fund_master import FundSnapshot
from src.analysis.nav_series import NavSeries
from src.utils.logger import setup_logger

logger = setup_logger("returns")

_CFG = section("returns")
HORIZONS_MONTHS: tuple[int, ...] = tuple(_CFG.get("horizons_months", [1, 3, 6, 12, 36, 60]))
LOOKUP_GRACE_DAYS: int = int(_CFG.get("lookup_grace_days", 15))
SIP_WINDOW_MONTHS: int = int(_CFG.get("sip_window_months", 36))
SIP_MONTHLY_AMOUNT: float = float(_CFG.get("sip_monthly_amount", 1000.0))
SIP_MIN_POINTS: int = int(_CFG.get("sip_min_points", 12))
CAGR_MIN_YEARS: float = float(_CFG.get("cagr_min_years", 1.0))

DAYS_PER_YEAR = 365.25


@dataclass(frozen=True)
class RollingReturnsReport:
    fund_id: str
    fund_name: str
    return_1m: float | None = None
    return_3m: float | None = None
    return_6m: float | None = None
    return_1y: float | None = None
    return_3y: float | None = None
    return_5y: float | None = None
    sip_return_3y: float | None = None
    lump_sum_return_3y: float | None = None
    cagr: float | None = None
    as_of: date | None = None

    def to_dict(self) -> dict:
        return {
            "fund_id": self.fund_id,
            "fund_name": self.fund_name,
            "return_1m": self.return_1m,
            "return_3m": self.return_3m,
            "return_6m": self.return_6m,
            "return_1y": self.return_1y,
            "return_3y": self.return_3y,
            "return_5y": self.return_5y,
            "sip_return_3y": self.sip_return_3y,
            "lump_sum_return_3y": self.lump_sum_return_3y,
            "cagr": self.cagr,
            "as_of": self.as_of.isoformat() if self.as_of else None,
        }


# ---------------------------------------------------------------------------
# Calculations
# ---------------------------------------------------------------------------

def calculate_period_return(
    navs: NavSeries,
    months: int,
    grace_days: int | None = LOOKUP_GRACE_DAYS,
) -> float | None:
    """Simple return in % from the NAV *months* before the latest point.

    The reference NAV is the latest point on or before the target date,
    else the first point after it provided it falls within *grace_days*.
    Horizons reaching further back than the history return None.

    Trade-off: with an unbounded forward fallback a sparse or short history
    yields a return over a shorter span than *months*; the window only
    bridges the gap between a target date and the next available NAV.
    Pass ``grace_days=None`` for the unbounded fallback.
    """
    if navs.is_empty or months <= 0:
        return None
    target = navs.months_back(months)
    hit = navs.closest_to(target, max_forward_days=grace_days)
    if hit is None:
        return None
    _, past = hit
    if past <= 0:
        return None
    latest = navs.latest_nav
    return round((latest - past) / past * 100, 2)


def calculate_cagr(navs: NavSeries, min_years: float = CAGR_MIN_YEARS) -> float | None:
    """Compound annual growth in % between the first and latest NAV."""
    if len(navs) < 2:
        return None
    years = (navs.latest_date - navs.first_date).days / DAYS_PER_YEAR
    if years < min_years:
        return None
    start, end = navs.first_nav, navs.latest_nav
    cagr = ((end / start) ** (1.0 / years) - 1) * 100
    return round(cagr, 2)


def sip_purchase_navs(navs: NavSeries, months: int = SIP_WINDOW_MONTHS) -> list[float]:
    """NAV paid for each monthly instalment over the last *months* months.

    One instalment per month from ``latest - months`` up to the latest date,
    each at the last NAV on or before the instalment date.  Instalment dates
    that precede the history are skipped.
    """
    if navs.is_empty:
        return []
    end = pd.Timestamp(navs.latest_date)
    start = pd.Timestamp(navs.months_back(months))
    purchases: list[float] = []
    step = 0
    while True:
        when = start + pd.DateOffset(months=step)
        if when > end:
            break
        hit = navs.floor(when)
        if hit is not None and hit[1] > 0:
            purchases.append(hit[1])
        step += 1
    return purchases


def calculate_sip_return(
    navs: NavSeries,
    months: int = SIP_WINDOW_MONTHS,
    monthly_amount: float = SIP_MONTHLY_AMOUNT,
    min_points: int = SIP_MIN_POINTS,
) -> float | None:
    """Absolute return in % of a fixed monthly investment held to today."""
    if len(navs) < min_points:
        return None
    purchases = sip_purchase_navs(navs, months)
    if len(purchases) < min_points:
        return None
    units = sum(monthly_amount / nav for nav in purchases)
    invested = monthly_amount * len(purchases)
    value = units * navs.latest_nav
    return round((value - invested) / invested * 100, 2)


def calculate_rolling_returns(fund: FundSnapshot) -> RollingReturnsReport:
    """Full rolling-returns report for one fund; all None without NAV data."""
    navs = NavSeries.from_fund(fund)
    if navs.is_empty:
        logger.debug("No usable NAV history for %s", fund.name)
        return RollingReturnsReport(fund_id=fund.fund_id, fund_name=fund.name)

    by_horizon = {m: calculate_period_return(navs, m) for m in HORIZONS_MONTHS}
    three_year = by_horizon[36] if 36 in by_horizon else calculate_period_return(navs, 36)
    return RollingReturnsReport(
        fund_id=fund.fund_id,
        fund_name=fund.name,
        return_1m=by_horizon.get(1),
        return_3m=by_horizon.get(3),
        return_6m=by_horizon.get(6),
        return_1y=by_horizon.get(12),
        return_3y=three_year,
        return_5y=by_horizon.get(60),
        sip_return_3y=calculate_sip_return(navs),
        lump_sum_return_3y=three_year,
        cagr=calculate_cagr(navs),
        as_of=navs.latest_date,
    )
