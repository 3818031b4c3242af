"""PortfolioAnalyticsEngine: one entry point over all portfolio analytics."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import numpy as np

from src.data_sources.fund_master import FundSnapshot, load_funds
from src.analysis.covariance import CovarianceReport, calculate_portfolio_covariance
from src.analysis.diagnostics import PortfolioDiagnostic, run_diagnostic
from src.analysis.diversification import DiversificationReport, build_diversification_report
from src.analysis.returns import RollingReturnsReport, calculate_rolling_returns
from src.analysis.risk_insights import RiskInsightsReport, calculate_risk_insights
from src.analysis.wealth_projection import WealthProjection, project_portfolio_wealth
from src.analysis.weights import PortfolioWeights
from src.utils.logger import setup_logger

logger = setup_logger("analytics_engine")


class PortfolioAnalyticsEngine:
    """Analytics over a fixed set of funds and a portfolio weight vector.

    Holds only immutable inputs; every method builds its own result, so one
    engine may be shared across threads.

    Raises:
        ValueError: on construction, if the weights name an unknown fund,
            a fund has no weight entry, or fund ids repeat.
    """

    def __init__(
        self,
        funds: Sequence[FundSnapshot],
        weights: Mapping[str, float] | PortfolioWeights,
    ) -> None:
        self.funds: tuple[FundSnapshot, ...] = tuple(funds)
        self.weights = PortfolioWeights.coerce(weights)
        self._by_id: dict[str, FundSnapshot] = {}
        for fund in self.funds:
            if fund.fund_id in self._by_id:
                raise ValueError(f"Duplicate fund id '{fund.fund_id}'")
            self._by_id[fund.fund_id] = fund

        unknown = [fid for fid in self.weights if fid not in self._by_id]
        if unknown:
            raise ValueError(f"Weights reference unknown fund id(s): {sorted(unknown)}")
        missing = [f.fund_id for f in self.funds if f.fund_id not in self.weights]
        if missing:
            raise ValueError(f"No weight given for fund id(s): {missing}")

    @classmethod
    def from_documents(
        cls,
        documents: list[Mapping],
        weights: Mapping[str, float] | PortfolioWeights,
    ) -> PortfolioAnalyticsEngine:
        return cls(load_funds(documents), weights)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def fund(self, fund_id: str) -> FundSnapshot:
        try:
            return self._by_id[fund_id]
        except KeyError:
            raise ValueError(f"Unknown fund id '{fund_id}'") from None

    @property
    def active_funds(self) -> list[FundSnapshot]:
        return [f for f in self.funds if self.weights.is_active(f.fund_id)]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def diversification(self) -> DiversificationReport:
        return build_diversification_report(self.funds, self.weights)

    def rolling_returns(self, fund_id: str) -> RollingReturnsReport:
        return calculate_rolling_returns(self.fund(fund_id))

    def risk_insights(
        self,
        fund_id: str,
        defaults: Mapping[str, float] | None = None,
    ) -> RiskInsightsReport:
        return calculate_risk_insights(self.fund(fund_id), defaults)

    def covariance(self) -> CovarianceReport:
        """Covariance across the active funds (all funds if none is active)."""
        funds = self.active_funds or list(self.funds)
        return calculate_portfolio_covariance(funds, self.weights)

    def wealth_projection(
        self,
        amount: float,
        years: int,
        seed: int | None = None,
        method: str = "history",
        rng: np.random.Generator | None = None,
    ) -> WealthProjection:
        return project_portfolio_wealth(
            self.funds, self.weights, amount, years,
            method=method, seed=seed, rng=rng,
        )

    def diagnostic(self) -> PortfolioDiagnostic:
        return run_diagnostic(self.funds, self.weights)

    def full_report(
        self,
        amount: float | None = None,
        years: int | None = None,
        seed: int | None = None,
        method: str = "history",
    ) -> dict[str, Any]:
        """Every report as plain dicts; the projection only when amount and years are given."""
        diversification = self.diversification()
        active = self.active_funds
        report: dict[str, Any] = {
            "diversification": diversification.to_dict(),
            "rolling_returns": {
                f.fund_id: calculate_rolling_returns(f).to_dict() for f in active
            },
            "risk_insights": {
                f.fund_id: calculate_risk_insights(f).to_dict() for f in active
            },
            "covariance": self.covariance().to_dict() if self.funds else None,
            "diagnostic": run_diagnostic(self.funds, self.weights, diversification).to_dict(),
        }
        if amount is not None and years is not None:
            report["wealth_projection"] = self.wealth_projection(
                amount, years, seed=seed, method=method,
            ).to_dict()
        logger.info(
            "Full report built for %d funds (%d active)", len(self.funds), len(active),
        )
        return report
