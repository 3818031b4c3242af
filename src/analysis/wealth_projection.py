"""Monte Carlo wealth projection.

Each path compounds the initial amount with discrete annual geometric
Brownian motion::

    value_y = value_{y-1} * exp(mu - 0.5 * sigma^2 + sigma * Z)

with ``mu = ln(1 + mean_return)`` so that a zero-volatility run grows to
exactly ``initial * (1 + mean_return) ** years``.  Percentiles are read per
year from the sorted path values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from src.config import default_simulation_seed, section
from src.data_sources.fund_master import FundSnapshot
from src.analysis.covariance import estimate_covariance
from src.analysis.weights import PortfolioWeights
from src.utils.logger import setup_logger

logger = setup_logger("wealth_projection")

_CFG = section("projection")
SIMULATION_RUNS: int = int(_CFG.get("simulation_runs", 1000))
MAX_YEARS: int = int(_CFG.get("max_years", 50))
DEFAULT_MEAN_RETURN: float = float(_CFG.get("default_mean_return", 0.12))
DEFAULT_STD_DEV: float = float(_CFG.get("default_std_dev", 0.15))
RISK_FREE_RATE: float = float(_CFG.get("risk_free_rate", 0.05))
MARKET_RETURN: float = float(_CFG.get("market_return", 0.12))

_PCT = _CFG.get("percentiles", {}) or {}
PESSIMISTIC_PCT: float = float(_PCT.get("pessimistic", 0.10))
EXPECTED_PCT: float = float(_PCT.get("expected", 0.50))
OPTIMISTIC_PCT: float = float(_PCT.get("optimistic", 0.90))

MONTHS_PER_YEAR = 12
STATS_METHODS = ("history", "metadata")


# ---------------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class YearProjection:
    year: int
    pessimistic: float
    expected: float
    optimistic: float

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "pessimistic": self.pessimistic,
            "expected": self.expected,
            "optimistic": self.optimistic,
        }


@dataclass(frozen=True)
class PortfolioStats:
    """Annualised portfolio return assumptions (decimal)."""

    mean_return: float
    std_dev: float
    source: str

    def to_dict(self) -> dict:
        return {
            "mean_return": round(self.mean_return, 4),
            "std_dev": round(self.std_dev, 4),
            "source": self.source,
        }


@dataclass(frozen=True)
class WealthProjection:
    projected_years: int
    total_investment: float
    pessimistic: float
    expected: float
    optimistic: float
    timeline: tuple[YearProjection, ...]
    simulation_runs: int
    stats: PortfolioStats | None = None

    def to_dict(self) -> dict:
        return {
            "projected_years": self.projected_years,
            "total_investment": self.total_investment,
            "pessimistic": self.pessimistic,
            "expected": self.expected,
            "optimistic": self.optimistic,
            "timeline": [y.to_dict() for y in self.timeline],
            "simulation_runs": self.simulation_runs,
            "stats": self.stats.to_dict() if self.stats else None,
        }


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def _validate(mean_return: float, std_dev: float, initial: float, years: int, n_paths: int) -> None:
    if isinstance(years, bool) or not isinstance(years, (int, np.integer)):
        raise ValueError(f"years must be an integer, got {years!r}")
    if years < 1 or years > MAX_YEARS:
        raise ValueError(f"years must be between 1 and {MAX_YEARS}, got {years}")
    if not math.isfinite(initial) or initial <= 0:
        raise ValueError(f"Initial amount must be positive, got {initial}")
    if n_paths <= 0:
        raise ValueError(f"Number of paths must be positive, got {n_paths}")
    if not math.isfinite(std_dev) or std_dev < 0:
        raise ValueError(f"Standard deviation must be non-negative, got {std_dev}")
    if not math.isfinite(mean_return) or mean_return <= -1:
        raise ValueError(f"Mean return must be greater than -100%, got {mean_return}")


def _percentile_index(n: int, p: float) -> int:
    return min(int(n * p), n - 1)


def simulate_paths(
    mean_return: float,
    std_dev: float,
    initial: float,
    years: int,
    n_paths: int = SIMULATION_RUNS,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Simulated values, shape ``(n_paths, years)``; column y-1 is year y."""
    _validate(mean_return, std_dev, initial, years, n_paths)
    rng = rng or np.random.default_rng()
    drift = math.log1p(mean_return) - 0.5 * std_dev ** 2
    z = rng.standard_normal((n_paths, years))
    log_growth = np.cumsum(drift + std_dev * z, axis=1)
    return initial * np.exp(log_growth)


def simulate_wealth(
    mean_return: float,
    std_dev: float,
    initial: float,
    years: int,
    n_paths: int = SIMULATION_RUNS,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
    stats: PortfolioStats | None = None,
) -> WealthProjection:
    """Run the Monte Carlo projection.

    Args:
        mean_return: Expected annual return (0.12 = 12%).
        std_dev: Annual volatility (0.15 = 15%).
        initial: Amount invested at year 0.
        years: Horizon, 1 to ``MAX_YEARS``.
        n_paths: Number of simulated paths.
        seed: Seed for a fresh generator; ignored when *rng* is given.
            Defaults to ``MF_ANALYST_SIMULATION_SEED`` when set.
        rng: Caller-owned generator.

    Raises:
        ValueError: for a horizon outside the supported range, a
            non-positive amount or path count, or a negative std-dev.
    """
    if rng is None:
        rng = np.random.default_rng(seed if seed is not None else default_simulation_seed())
    paths = simulate_paths(mean_return, std_dev, initial, years, n_paths, rng)
    paths.sort(axis=0)

    lo = _percentile_index(n_paths, PESSIMISTIC_PCT)
    mid = _percentile_index(n_paths, EXPECTED_PCT)
    hi = _percentile_index(n_paths, OPTIMISTIC_PCT)

    timeline = tuple(
        YearProjection(
            year=y + 1,
            pessimistic=float(round(paths[lo, y])),
            expected=float(round(paths[mid, y])),
            optimistic=float(round(paths[hi, y])),
        )
        for y in range(years)
    )
    final = paths[:, -1]
    logger.debug(
        "Projected %s over %d years (%d paths, mean %.4f, std %.4f)",
        initial, years, n_paths, mean_return, std_dev,
    )
    return WealthProjection(
        projected_years=years,
        total_investment=float(initial),
        pessimistic=round(float(final[lo]), 2),
        expected=round(float(final[mid]), 2),
        optimistic=round(float(final[hi]), 2),
        timeline=timeline,
        simulation_runs=n_paths,
        stats=stats,
    )


# ---------------------------------------------------------------------------
# Portfolio statistics
# ---------------------------------------------------------------------------

def default_stats() -> PortfolioStats:
    return PortfolioStats(DEFAULT_MEAN_RETURN, DEFAULT_STD_DEV, "default")


def _normalised_weights(funds: Sequence[FundSnapshot], weights: PortfolioWeights) -> np.ndarray:
    w = np.array([weights.effective_weight(f.fund_id) for f in funds], dtype=float)
    total = w.sum()
    return w / total if total > 0 else w


def estimate_stats_from_history(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
) -> PortfolioStats:
    """Annualise the portfolio's monthly mean return and covariance std-dev.

    Weights are normalised over active funds.  Falls back to the default
    assumptions when fewer than two aligned months exist or the portfolio
    shows no variability.
    """
    weights = PortfolioWeights.coerce(weights)
    active = [f for f in funds if weights.is_active(f.fund_id)]
    if not active:
        return default_stats()
    est = estimate_covariance(active, weights)
    if est.months_used < 2:
        logger.info("Insufficient NAV history for projection; using default assumptions")
        return default_stats()
    w = _normalised_weights(active, weights)
    monthly_var = max(float(w @ est.covariance @ w), 0.0)
    std = math.sqrt(monthly_var) * math.sqrt(MONTHS_PER_YEAR)
    if std == 0.0:
        return default_stats()
    mean = float(w @ est.means) * MONTHS_PER_YEAR
    if mean <= -1:
        return default_stats()
    return PortfolioStats(mean, std, "history")


def fund_stats_from_metadata(fund: FundSnapshot) -> tuple[float, float]:
    """CAPM-style (mean, std) proxy from a fund's risk metadata."""
    std = fund.risk_metric("std_dev")
    alpha = fund.risk_metric("alpha")
    beta = fund.risk_metric("beta")
    if std is None and alpha is None and beta is None:
        return DEFAULT_MEAN_RETURN, DEFAULT_STD_DEV
    std = std / 100.0 if std is not None else DEFAULT_STD_DEV
    alpha = alpha / 100.0 if alpha is not None else 0.0
    beta = beta if beta is not None else 1.0
    mean = RISK_FREE_RATE + beta * (MARKET_RETURN - RISK_FREE_RATE) + alpha
    return mean, std


def estimate_stats_from_metadata(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
) -> PortfolioStats:
    """Weighted CAPM mean and weighted-average std-dev over active funds."""
    weights = PortfolioWeights.coerce(weights)
    active = [f for f in funds if weights.is_active(f.fund_id)]
    if not active:
        return default_stats()
    w = _normalised_weights(active, weights)
    per_fund = np.array([fund_stats_from_metadata(f) for f in active], dtype=float)
    mean = float(w @ per_fund[:, 0])
    std = float(w @ per_fund[:, 1])
    if std == 0.0 or mean <= -1:
        return default_stats()
    return PortfolioStats(mean, std, "metadata")


def estimate_portfolio_stats(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
    method: str = "history",
) -> PortfolioStats:
    if method == "history":
        return estimate_stats_from_history(funds, weights)
    if method == "metadata":
        return estimate_stats_from_metadata(funds, weights)
    raise ValueError(f"Unknown stats method '{method}'; expected one of {STATS_METHODS}")


def project_portfolio_wealth(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
    initial: float,
    years: int,
    method: str = "history",
    n_paths: int = SIMULATION_RUNS,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
) -> WealthProjection:
    stats = estimate_portfolio_stats(funds, weights, method)
    logger.info(
        "Portfolio stats (%s): mean %.2f%%, std %.2f%%",
        stats.source, stats.mean_return * 100, stats.std_dev * 100,
    )
    return simulate_wealth(
        stats.mean_return, stats.std_dev, initial, years,
        n_paths=n_paths, seed=seed, rng=rng, stats=stats,
    )
