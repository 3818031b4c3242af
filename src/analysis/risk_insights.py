"""Risk insights - alpha, beta, Sharpe and volatility with plain-language labels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from src.config import section
from src.data_sources.fund_master import METRIC_ALIASES, FundSnapshot
from src.utils.logger import setup_logger
from src.utils.numeric import safe_float

logger = setup_logger("risk_insights")

_CFG = section("risk_insights")
BETA_DEFENSIVE: float = float(_CFG.get("beta_defensive", 0.8))
BETA_AGGRESSIVE: float = float(_CFG.get("beta_aggressive", 1.2))
STDEV_LOW: float = float(_CFG.get("stdev_low", 12.0))
STDEV_HIGH: float = float(_CFG.get("stdev_high", 20.0))
ALPHA_STRONG: float = float(_CFG.get("alpha_strong", 2.0))

VOLATILITY_LOW = "LOW"
VOLATILITY_HIGH = "HIGH"
VOLATILITY_MARKET_ALIGNED = "MARKET_ALIGNED"

_RISK_LABELS = {
    VOLATILITY_LOW: "Defensive",
    VOLATILITY_HIGH: "Aggressive",
    VOLATILITY_MARKET_ALIGNED: "Balanced",
}


@dataclass(frozen=True)
class RiskInsightsReport:
    fund_id: str
    fund_name: str
    alpha: float | None
    beta: float | None
    sharpe_ratio: float | None
    std_dev: float | None
    alpha_insight: str
    beta_insight: str
    volatility_level: str
    overall_risk_label: str

    def to_dict(self) -> dict:
        return {
            "fund_id": self.fund_id,
            "fund_name": self.fund_name,
            "alpha": self.alpha,
            "beta": self.beta,
            "sharpe_ratio": self.sharpe_ratio,
            "std_dev": self.std_dev,
            "alpha_insight": self.alpha_insight,
            "beta_insight": self.beta_insight,
            "volatility_level": self.volatility_level,
            "overall_risk_label": self.overall_risk_label,
        }


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

def alpha_insight(alpha: float | None) -> str:
    if alpha is None:
        return "Alpha data not available"
    if alpha > ALPHA_STRONG:
        return f"Outperforms benchmark by {alpha:.1f}% annually"
    if alpha > 0:
        return f"Slightly beats benchmark by {alpha:.1f}% annually"
    if alpha > -ALPHA_STRONG:
        return f"Slightly trails benchmark by {abs(alpha):.1f}% annually"
    return f"Underperforms benchmark by {abs(alpha):.1f}% annually"


def beta_insight(beta: float | None) -> str:
    if beta is None:
        return "Beta data not available"
    if beta < BETA_DEFENSIVE:
        return "Lower volatility than market - defensive"
    if beta <= BETA_AGGRESSIVE:
        return "Market-aligned volatility"
    return "Higher volatility than market - aggressive"


def volatility_level(beta: float | None, std_dev: float | None) -> str:
    """Classify from beta when present, otherwise from std-dev (in %)."""
    if beta is not None:
        if beta < BETA_DEFENSIVE:
            return VOLATILITY_LOW
        if beta > BETA_AGGRESSIVE:
            return VOLATILITY_HIGH
        return VOLATILITY_MARKET_ALIGNED
    if std_dev is not None:
        if std_dev < STDEV_LOW:
            return VOLATILITY_LOW
        if std_dev > STDEV_HIGH:
            return VOLATILITY_HIGH
    return VOLATILITY_MARKET_ALIGNED


def risk_label(level: str) -> str:
    return _RISK_LABELS.get(level, _RISK_LABELS[VOLATILITY_MARKET_ALIGNED])


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def calculate_risk_insights(
    fund: FundSnapshot,
    defaults: Mapping[str, float] | None = None,
) -> RiskInsightsReport:
    """Extract risk metrics for *fund* and label them.

    Args:
        fund: Fund snapshot carrying the risk metadata document.
        defaults: Optional fallback per metric name (``alpha``, ``beta``,
            ``sharpe_ratio``, ``std_dev``), applied independently to each
            metric the metadata does not provide.
    """
    defaults = dict(defaults or {})
    unknown = set(defaults) - set(METRIC_ALIASES)
    if unknown:
        raise ValueError(f"Unknown risk metric default(s): {sorted(unknown)}")

    metrics: dict[str, float | None] = {}
    for name in METRIC_ALIASES:
        value = fund.risk_metric(name)
        if value is None:
            value = safe_float(defaults.get(name))
        metrics[name] = value

    if all(v is None for v in metrics.values()):
        logger.debug("No risk metadata for %s", fund.name)

    level = volatility_level(metrics["beta"], metrics["std_dev"])
    return RiskInsightsReport(
        fund_id=fund.fund_id,
        fund_name=fund.name,
        alpha=metrics["alpha"],
        beta=metrics["beta"],
        sharpe_ratio=metrics["sharpe_ratio"],
        std_dev=metrics["std_dev"],
        alpha_insight=alpha_insight(metrics["alpha"]),
        beta_insight=beta_insight(metrics["beta"]),
        volatility_level=level,
        overall_risk_label=risk_label(level),
    )
