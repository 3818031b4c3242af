"""Portfolio-level stock and sector exposure from per-fund disclosures.

Each fund contributes ``holding_weight_pct x portfolio_weight`` to a
security and ``sector_pct x portfolio_weight`` to a sector.  The
accumulators below are local builders owned by a single call; nothing is
shared between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from src.config import section
from src.data_sources.fund_master import FundSnapshot
from src.analysis.weights import PortfolioWeights
from src.utils.logger import setup_logger
from src.utils.numeric import clamp

logger = setup_logger("exposure")

_CFG = section("exposure")
OVERLAP_MIN_FUNDS: int = int(_CFG.get("overlap_min_funds", 2))
OVERLAP_MIN_EXPOSURE_PCT: float = float(_CFG.get("overlap_min_exposure_pct", 1.0))
TOP_OVERLAPPING_STOCKS: int = int(_CFG.get("top_overlapping_stocks", 5))
TOP_SECTORS: int = int(_CFG.get("top_sectors", 10))
HIGH_OVERLAP_PCT: float = float(_CFG.get("high_overlap_pct", 5.0))
HIGH_SECTOR_CONCENTRATION_PCT: float = float(_CFG.get("high_sector_concentration_pct", 30.0))
OVERLAP_PENALTY_DIVISOR: float = float(_CFG.get("overlap_penalty_divisor", 5.0))


# ---------------------------------------------------------------------------
# Per-fund extraction helpers (also used by the similarity analyzer)
# ---------------------------------------------------------------------------

def extract_stock_weights(fund: FundSnapshot) -> dict[str, float]:
    """security id -> raw percent of fund NAV.  Blank ids are skipped."""
    weights: dict[str, float] = {}
    for holding in fund.top_holdings:
        if holding.security_id:
            weights[holding.security_id] = holding.weight_pct
    return weights


def extract_sector_weights(fund: FundSnapshot) -> dict[str, float]:
    """sector name (as disclosed) -> percent of fund NAV."""
    return dict(fund.sector_allocation)


def capitalise(name: str) -> str:
    """Upper-case the first character only ("financial services" -> "Financial services")."""
    if not name:
        return name
    return name[:1].upper() + name[1:]


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------

@dataclass
class StockExposure:
    security_id: str
    security_name: str
    exposure_pct: float = 0.0
    fund_count: int = 0
    fund_names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "security_id": self.security_id,
            "security_name": self.security_name,
            "exposure_pct": round(self.exposure_pct, 2),
            "fund_count": self.fund_count,
            "fund_names": list(self.fund_names),
        }


class ExposureBuilder:
    """Accumulates weighted stock and sector exposure for one call."""

    def __init__(self) -> None:
        self.stocks: dict[str, StockExposure] = {}
        self.sectors: dict[str, float] = {}

    def add_fund(self, fund: FundSnapshot, weight: float) -> None:
        for holding in fund.top_holdings:
            if not holding.security_id:
                continue
            agg = self.stocks.get(holding.security_id)
            if agg is None:
                agg = StockExposure(holding.security_id, holding.security_name)
                self.stocks[holding.security_id] = agg
            if holding.security_name:
                agg.security_name = holding.security_name
            agg.exposure_pct += holding.weight_pct * weight
            agg.fund_count += 1
            agg.fund_names.append(fund.name)

        for sector, pct in fund.sector_allocation.items():
            key = capitalise(sector)
            self.sectors[key] = self.sectors.get(key, 0.0) + pct * weight


def aggregate_exposure(
    funds: Iterable[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
) -> ExposureBuilder:
    """Raw (unrounded, unfiltered) exposure across all active funds.

    Raises:
        ValueError: if a fund is missing from *weights*.
    """
    weights = PortfolioWeights.coerce(weights)
    builder = ExposureBuilder()
    for fund in funds:
        if not weights.is_active(fund.fund_id):
            continue
        builder.add_fund(fund, weights.weight_of(fund.fund_id))
    return builder


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExposureSummary:
    overlapping_stocks: tuple[StockExposure, ...]
    sector_allocation: dict[str, float]
    diversification_score: float
    overlap_status: str
    sector_concentration: str


def overlap_status(overlaps: list[StockExposure] | tuple[StockExposure, ...]) -> str:
    if not overlaps:
        return "Low"
    return "High" if overlaps[0].exposure_pct > HIGH_OVERLAP_PCT else "Moderate"


def sector_concentration_label(top_sector_pct: float) -> str:
    return "High" if top_sector_pct > HIGH_SECTOR_CONCENTRATION_PCT else "Balanced"


def diversification_score(top_sector_pct: float, overlap_exposures: Iterable[float]) -> float:
    """0-10 score: 10 - top sector / 10 - sum(overlap exposure) / 5, one decimal."""
    penalty = sum(overlap_exposures) / OVERLAP_PENALTY_DIVISOR
    return round(clamp(10.0 - top_sector_pct / 10.0 - penalty, 0.0, 10.0), 1)


def summarise_exposure(builder: ExposureBuilder) -> ExposureSummary:
    overlaps = [
        StockExposure(
            security_id=s.security_id,
            security_name=s.security_name,
            exposure_pct=round(s.exposure_pct, 2),
            fund_count=s.fund_count,
            fund_names=list(s.fund_names),
        )
        for s in builder.stocks.values()
        if s.fund_count >= OVERLAP_MIN_FUNDS and s.exposure_pct > OVERLAP_MIN_EXPOSURE_PCT
    ]
    overlaps.sort(key=lambda s: s.exposure_pct, reverse=True)
    overlaps = overlaps[:TOP_OVERLAPPING_STOCKS]

    ranked = sorted(builder.sectors.items(), key=lambda kv: kv[1], reverse=True)[:TOP_SECTORS]
    sectors = {name: round(value, 2) for name, value in ranked}

    top_sector_pct = next(iter(sectors.values()), 0.0)
    score = diversification_score(top_sector_pct, (s.exposure_pct for s in overlaps))

    return ExposureSummary(
        overlapping_stocks=tuple(overlaps),
        sector_allocation=sectors,
        diversification_score=score,
        overlap_status=overlap_status(overlaps),
        sector_concentration=sector_concentration_label(top_sector_pct),
    )
