"""NAV return series - normalise raw NAV history documents into ordered series.

Raw NAV history arrives as a mapping of date-string -> NAV value.  Dates come
in several formats depending on the enrichment source (monthly aggregates as
``YYYY-MM``, exchange style ``dd-MM-yyyy``, ISO dates and date-times) and the
values are sparse, irregular and unordered.  Entries that cannot be parsed or
carry a non-positive NAV are dropped without raising.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Callable, Mapping

import pandas as pd
from dateutil.parser import isoparse

from src.data_sources.fund_master import FundSnapshot
from src.utils.logger import setup_logger
from src.utils.numeric import safe_float

logger = setup_logger("nav_series")

# ---------------------------------------------------------------------------
# Date parsing
# ---------------------------------------------------------------------------

_YEAR_MONTH = re.compile(r"^\d{4}-\d{2}$")
_DAY_FIRST_FORMAT = "%d-%m-%Y"

DateParser = Callable[[str], "date | None"]


def _parse_year_month(text: str) -> date | None:
    if not _YEAR_MONTH.match(text):
        return None
    try:
        return date.fromisoformat(text + "-01")
    except ValueError:
        return None


def _parse_day_first(text: str) -> date | None:
    try:
        return datetime.strptime(text, _DAY_FIRST_FORMAT).date()
    except ValueError:
        return None


def _parse_iso(text: str) -> date | None:
    try:
        return isoparse(text).date()
    except (ValueError, OverflowError):
        return None


# Tried in order; the first parser returning a date wins.
DATE_PARSERS: tuple[DateParser, ...] = (
    _parse_year_month,
    _parse_day_first,
    _parse_iso,
)


def parse_nav_date(text: Any) -> date | None:
    """Parse a NAV date key, returning None when no known format matches."""
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None
    for parser in DATE_PARSERS:
        parsed = parser(text)
        if parsed is not None:
            return parsed
    return None


def _to_timestamp(value: date | datetime | str | pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(value).normalize()


# ---------------------------------------------------------------------------
# NavSeries
# ---------------------------------------------------------------------------

class NavSeries:
    """Ascending, date-indexed series of strictly positive NAV values."""

    def __init__(self, series: pd.Series | None = None) -> None:
        if series is None or series.empty:
            series = pd.Series([], index=pd.DatetimeIndex([]), dtype=float)
        self._series = series.sort_index()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> NavSeries:
        """Build from a raw ``date-string -> nav`` mapping.

        Duplicate dates (e.g. the same day in two formats) keep the value
        seen last.
        """
        points: dict[pd.Timestamp, float] = {}
        dropped = 0
        for key, value in (raw or {}).items():
            parsed = parse_nav_date(key)
            nav = safe_float(value)
            if parsed is None or nav is None or nav <= 0:
                dropped += 1
                continue
            points[pd.Timestamp(parsed)] = nav
        if dropped:
            logger.debug("Dropped %d invalid NAV entries", dropped)
        if not points:
            return cls()
        return cls(pd.Series(points, dtype=float))

    @classmethod
    def from_fund(cls, fund: FundSnapshot) -> NavSeries:
        return cls.from_mapping(fund.nav_history)

    # ----- basic accessors -------------------------------------------------

    def __len__(self) -> int:
        return len(self._series)

    @property
    def is_empty(self) -> bool:
        return self._series.empty

    @property
    def first_date(self) -> date | None:
        return None if self.is_empty else self._series.index[0].date()

    @property
    def latest_date(self) -> date | None:
        return None if self.is_empty else self._series.index[-1].date()

    @property
    def first_nav(self) -> float | None:
        return None if self.is_empty else float(self._series.iloc[0])

    @property
    def latest_nav(self) -> float | None:
        return None if self.is_empty else float(self._series.iloc[-1])

    def items(self) -> list[tuple[date, float]]:
        return [(ts.date(), float(v)) for ts, v in self._series.items()]

    # ----- point lookups ---------------------------------------------------

    def floor(self, target: date | datetime | str) -> tuple[date, float] | None:
        """Latest point at or before *target*."""
        if self.is_empty:
            return None
        idx = self._series.index.searchsorted(_to_timestamp(target), side="right") - 1
        if idx < 0:
            return None
        return self._series.index[idx].date(), float(self._series.iloc[idx])

    def ceiling(self, target: date | datetime | str) -> tuple[date, float] | None:
        """Earliest point at or after *target*."""
        if self.is_empty:
            return None
        idx = self._series.index.searchsorted(_to_timestamp(target), side="left")
        if idx >= len(self._series):
            return None
        return self._series.index[idx].date(), float(self._series.iloc[idx])

    def closest_to(
        self,
        target: date | datetime | str,
        max_forward_days: int | None = None,
    ) -> tuple[date, float] | None:
        """Nearest point at or before *target*, else nearest at or after it.

        With *max_forward_days* the forward (ceiling) fallback is accepted
        only if it lies within that many days after *target*.
        """
        hit = self.floor(target)
        if hit is not None:
            return hit
        hit = self.ceiling(target)
        if hit is None:
            return None
        if max_forward_days is not None:
            gap = (hit[0] - _to_timestamp(target).date()).days
            if gap > max_forward_days:
                return None
        return hit

    def months_back(self, months: int, anchor: date | None = None) -> date | None:
        """Calendar date *months* before *anchor* (default: latest date).

        Month arithmetic clamps to month end (31 Mar - 1M = 28/29 Feb).
        """
        anchor = anchor or self.latest_date
        if anchor is None:
            return None
        return (pd.Timestamp(anchor) - pd.DateOffset(months=months)).date()

    # ----- monthly views ---------------------------------------------------

    def monthly_navs(self) -> pd.Series:
        """Last known NAV per calendar month, indexed by monthly Period."""
        if self.is_empty:
            return pd.Series([], index=pd.PeriodIndex([], freq="M"), dtype=float)
        s = self._series
        return s.groupby(s.index.to_period("M")).last()

    def monthly_returns(self) -> pd.Series:
        """Simple month-over-month returns (decimal).  Empty below 2 months."""
        navs = self.monthly_navs()
        if len(navs) < 2:
            return pd.Series([], index=pd.PeriodIndex([], freq="M"), dtype=float)
        return ((navs - navs.shift(1)) / navs.shift(1)).iloc[1:]
