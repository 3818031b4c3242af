"""Diversification / overlap report: exposure aggregation plus fund similarity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from src.data_sources.fund_master import FundSnapshot
from src.analysis.exposure import (
    ExposureSummary,
    StockExposure,
    aggregate_exposure,
    summarise_exposure,
)
from src.analysis.similarity import FundSimilarity, compute_fund_similarities
from src.analysis.weights import PortfolioWeights
from src.utils.logger import setup_logger

logger = setup_logger("diversification")


@dataclass(frozen=True)
class DiversificationReport:
    diversification_score: float
    overlap_status: str
    sector_concentration: str
    overlapping_stocks: tuple[StockExposure, ...]
    sector_allocation: dict[str, float]
    fund_similarities: tuple[FundSimilarity, ...]

    @property
    def top_sector(self) -> tuple[str, float] | None:
        if not self.sector_allocation:
            return None
        return next(iter(self.sector_allocation.items()))

    def to_dict(self) -> dict:
        return {
            "diversification_score": self.diversification_score,
            "overlap_status": self.overlap_status,
            "sector_concentration": self.sector_concentration,
            "overlapping_stocks": [s.to_dict() for s in self.overlapping_stocks],
            "sector_allocation": dict(self.sector_allocation),
            "fund_similarities": [s.to_dict() for s in self.fund_similarities],
        }


def build_diversification_report(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
) -> DiversificationReport:
    """Aggregate exposure over active funds and pair them for similarity.

    Raises:
        ValueError: if a fund is missing from *weights*.
    """
    weights = PortfolioWeights.coerce(weights)
    active = [f for f in funds if weights.is_active(f.fund_id)]

    summary: ExposureSummary = summarise_exposure(aggregate_exposure(active, weights))
    similarities = compute_fund_similarities(active)

    logger.debug(
        "Diversification: %d active funds, score %.1f, %d overlapping stocks, %d similar pairs",
        len(active), summary.diversification_score,
        len(summary.overlapping_stocks), len(similarities),
    )
    return DiversificationReport(
        diversification_score=summary.diversification_score,
        overlap_status=summary.overlap_status,
        sector_concentration=summary.sector_concentration,
        overlapping_stocks=summary.overlapping_stocks,
        sector_allocation=summary.sector_allocation,
        fund_similarities=tuple(similarities),
    )
