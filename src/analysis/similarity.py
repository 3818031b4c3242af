"""Pairwise fund similarity from disclosed holdings and sectors.

Both measures are overlap coefficients (sum of element-wise minimums) over
raw per-fund weights, independent of the portfolio weights.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Sequence

from src.config import section
from src.data_sources.fund_master import FundSnapshot
from src.analysis.exposure import extract_sector_weights, extract_stock_weights

_CFG = section("similarity")
STOCK_OVERLAP_THRESHOLD: float = float(_CFG.get("stock_overlap_threshold", 10.0))
SECTOR_OVERLAP_THRESHOLD: float = float(_CFG.get("sector_overlap_threshold", 70.0))


@dataclass(frozen=True)
class FundSimilarity:
    fund_a: str
    fund_b: str
    stock_overlap_pct: float
    sector_correlation: float

    def to_dict(self) -> dict:
        return {
            "fund_a": self.fund_a,
            "fund_b": self.fund_b,
            "stock_overlap_pct": self.stock_overlap_pct,
            "sector_correlation": self.sector_correlation,
        }


def overlap_coefficient(a: dict[str, float], b: dict[str, float]) -> float:
    return sum(min(w, b[key]) for key, w in a.items() if key in b)


def stock_overlap(fund_a: FundSnapshot, fund_b: FundSnapshot) -> float:
    return overlap_coefficient(extract_stock_weights(fund_a), extract_stock_weights(fund_b))


def sector_correlation(fund_a: FundSnapshot, fund_b: FundSnapshot) -> float:
    return overlap_coefficient(extract_sector_weights(fund_a), extract_sector_weights(fund_b))


def compute_fund_similarities(funds: Sequence[FundSnapshot]) -> list[FundSimilarity]:
    """Pairs above either threshold, sorted by stock overlap (desc)."""
    result: list[FundSimilarity] = []
    for f1, f2 in combinations(funds, 2):
        stocks = stock_overlap(f1, f2)
        sectors = sector_correlation(f1, f2)
        if stocks > STOCK_OVERLAP_THRESHOLD or sectors > SECTOR_OVERLAP_THRESHOLD:
            result.append(FundSimilarity(
                fund_a=f1.name,
                fund_b=f2.name,
                stock_overlap_pct=round(stocks, 2),
                sector_correlation=round(sectors, 2),
            ))
    result.sort(key=lambda s: s.stock_overlap_pct, reverse=True)
    return result
