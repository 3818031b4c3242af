"""Portfolio covariance / correlation from historical monthly NAV returns.

Series are aligned by position: every fund is trimmed to its most recent
``months_used`` monthly returns and observations are paired index by index.
Funds whose histories end in different months are therefore compared
slightly out of step; this is accepted for sparse retail NAV data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from src.data_sources.fund_master import FundSnapshot
from src.analysis.nav_series import NavSeries
from src.analysis.weights import PortfolioWeights
from src.utils.logger import setup_logger
from src.utils.numeric import round_matrix

logger = setup_logger("covariance")

CALCULATION_METHOD = "HISTORICAL_MONTHLY"


@dataclass(frozen=True, eq=False)
class CovarianceEstimate:
    """Unrounded covariance statistics (monthly, decimal units)."""

    fund_ids: tuple[str, ...]
    fund_names: tuple[str, ...]
    weights: np.ndarray
    means: np.ndarray
    std_devs: np.ndarray
    covariance: np.ndarray
    correlation: np.ndarray
    months_used: int

    @property
    def portfolio_variance(self) -> float:
        return max(float(self.weights @ self.covariance @ self.weights), 0.0)

    @property
    def portfolio_std_dev(self) -> float:
        return float(np.sqrt(self.portfolio_variance))

    @property
    def portfolio_mean(self) -> float:
        return float(self.weights @ self.means)

    @property
    def weighted_avg_std_dev(self) -> float:
        return float(self.weights @ self.std_devs)

    @property
    def diversification_benefit(self) -> float:
        naive = self.weighted_avg_std_dev
        if naive <= 0:
            return 0.0
        return (naive - self.portfolio_std_dev) / naive * 100


@dataclass(frozen=True)
class CovarianceReport:
    fund_ids: list[str]
    fund_names: list[str]
    covariance_matrix: list[list[float]]
    correlation_matrix: list[list[float]]
    portfolio_variance: float
    portfolio_std_dev: float
    weighted_avg_std_dev: float
    fund_std_devs: list[float]
    diversification_benefit: float
    months_used: int
    calculation_method: str = CALCULATION_METHOD

    def to_dict(self) -> dict:
        return {
            "fund_ids": list(self.fund_ids),
            "fund_names": list(self.fund_names),
            "covariance_matrix": [list(r) for r in self.covariance_matrix],
            "correlation_matrix": [list(r) for r in self.correlation_matrix],
            "portfolio_variance": self.portfolio_variance,
            "portfolio_std_dev": self.portfolio_std_dev,
            "weighted_avg_std_dev": self.weighted_avg_std_dev,
            "fund_std_devs": list(self.fund_std_devs),
            "diversification_benefit": self.diversification_benefit,
            "months_used": self.months_used,
            "calculation_method": self.calculation_method,
        }


# ---------------------------------------------------------------------------
# Core computation
# ---------------------------------------------------------------------------

def aligned_returns(return_series: Sequence[np.ndarray]) -> tuple[np.ndarray, int]:
    """Trim each series to the most recent common length.

    Returns an ``(n_funds, months)`` matrix and the common length, which is
    zero if any series is empty.
    """
    if not return_series:
        return np.empty((0, 0)), 0
    months = min(len(r) for r in return_series)
    if months == 0:
        return np.zeros((len(return_series), 0)), 0
    return np.vstack([np.asarray(r, dtype=float)[-months:] for r in return_series]), months


def covariance_from_returns(matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Means, population std-devs, covariance and correlation of row series."""
    n, months = matrix.shape
    if months == 0:
        zeros = np.zeros(n)
        return zeros, zeros.copy(), np.zeros((n, n)), np.eye(n)

    means = matrix.mean(axis=1)
    deviations = matrix - means[:, None]
    cov = deviations @ deviations.T / months
    std = np.sqrt(np.clip(np.diag(cov), 0.0, None))

    denom = np.outer(std, std)
    corr = np.divide(cov, denom, out=np.zeros_like(cov), where=denom > 0)
    corr = np.clip(corr, -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)
    return means, std, cov, corr


def estimate_covariance(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
) -> CovarianceEstimate:
    """Unrounded covariance statistics for *funds* under *weights*.

    Raises:
        ValueError: if *funds* is empty or a fund is missing from *weights*.
    """
    if not funds:
        raise ValueError("Covariance requires at least one fund")
    weights = PortfolioWeights.coerce(weights)
    w = np.array([weights.effective_weight(f.fund_id) for f in funds], dtype=float)

    series = [NavSeries.from_fund(f).monthly_returns().to_numpy(dtype=float) for f in funds]
    empty = [f.name for f, r in zip(funds, series) if len(r) == 0]
    if empty:
        logger.warning("No monthly returns for %s; covariance uses 0 months", ", ".join(empty))

    matrix, months = aligned_returns(series)
    means, std, cov, corr = covariance_from_returns(matrix)
    return CovarianceEstimate(
        fund_ids=tuple(f.fund_id for f in funds),
        fund_names=tuple(f.name for f in funds),
        weights=w,
        means=means,
        std_devs=std,
        covariance=cov,
        correlation=corr,
        months_used=months,
    )


def calculate_portfolio_covariance(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
) -> CovarianceReport:
    """Covariance report; matrices to 4 dp, scalar outputs to 2 dp.

    Full-precision portfolio statistics remain available from
    :func:`estimate_covariance`.
    """
    est = estimate_covariance(funds, weights)
    return CovarianceReport(
        fund_ids=list(est.fund_ids),
        fund_names=list(est.fund_names),
        covariance_matrix=round_matrix(est.covariance, 4),
        correlation_matrix=round_matrix(est.correlation, 4),
        portfolio_variance=round(est.portfolio_variance, 2),
        portfolio_std_dev=round(est.portfolio_std_dev * 100, 2),
        weighted_avg_std_dev=round(est.weighted_avg_std_dev * 100, 2),
        fund_std_devs=[round(float(s) * 100, 2) for s in est.std_devs],
        diversification_benefit=round(est.diversification_benefit, 2),
        months_used=est.months_used,
    )
