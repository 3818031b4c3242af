"""Rule-based portfolio diagnostic.

Runs a fixed set of checks over the portfolio's funds, its catalogue
attributes (fund house, category, expense ratio, plan type) and the
diversification report, and turns them into severity-ranked suggestions,
a few strengths and a templated summary.  No external services involved.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

from src.config import section
from src.data_sources.fund_master import FundSnapshot
from src.analysis.diversification import DiversificationReport, build_diversification_report
from src.analysis.weights import PortfolioWeights
from src.utils.logger import setup_logger

logger = setup_logger("diagnostics")

_CFG = section("diagnostics")
FUND_HOUSE_CONCENTRATION: float = float(_CFG.get("fund_house_concentration", 0.5))
OVER_DIVERSIFICATION_FUNDS: int = int(_CFG.get("over_diversification_funds", 5))
MIN_FUNDS_FOR_DIVERSIFICATION: int = int(_CFG.get("min_funds_for_diversification", 2))
SECTOR_CONCENTRATION_PCT: float = float(_CFG.get("sector_concentration_pct", 30.0))
HIGH_EXPENSE_RATIO: float = float(_CFG.get("high_expense_ratio", 1.5))
LARGE_CAP_SKEW: float = float(_CFG.get("large_cap_skew", 0.75))
SMALL_MID_CAP_SKEW: float = float(_CFG.get("small_mid_cap_skew", 0.60))
FLEXI_CAP_SKEW: float = float(_CFG.get("flexi_cap_skew", 0.70))
MIN_EQUITY_WEIGHT: float = float(_CFG.get("min_equity_weight", 0.01))
MAX_STRENGTHS: int = int(_CFG.get("max_strengths", 3))


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


_SEVERITY_ORDER = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


class SuggestionCategory(str, Enum):
    FUND_HOUSE_CONCENTRATION = "FUND_HOUSE_CONCENTRATION"
    LACK_OF_DIVERSIFICATION = "LACK_OF_DIVERSIFICATION"
    OVER_DIVERSIFICATION = "OVER_DIVERSIFICATION"
    SECTOR_CONCENTRATION = "SECTOR_CONCENTRATION"
    STOCK_OVERLAP = "STOCK_OVERLAP"
    HIGH_EXPENSE_RATIO = "HIGH_EXPENSE_RATIO"
    NO_DEBT_ALLOCATION = "NO_DEBT_ALLOCATION"
    NO_EQUITY_ALLOCATION = "NO_EQUITY_ALLOCATION"
    MARKET_CAP_IMBALANCE = "MARKET_CAP_IMBALANCE"


@dataclass(frozen=True)
class Suggestion:
    category: SuggestionCategory
    severity: Severity
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class DiagnosticMetrics:
    total_funds: int = 0
    fund_house_distribution: dict[str, int] = field(default_factory=dict)
    asset_class_breakdown: dict[str, float] = field(default_factory=dict)
    diversification_score: float = 0.0
    overlap_status: str = "N/A"
    sector_concentration: str = "N/A"
    top_sector: str = ""
    top_sector_allocation: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_funds": self.total_funds,
            "fund_house_distribution": dict(self.fund_house_distribution),
            "asset_class_breakdown": dict(self.asset_class_breakdown),
            "diversification_score": self.diversification_score,
            "overlap_status": self.overlap_status,
            "sector_concentration": self.sector_concentration,
            "top_sector": self.top_sector,
            "top_sector_allocation": self.top_sector_allocation,
        }


@dataclass(frozen=True)
class PortfolioDiagnostic:
    summary: str
    suggestions: tuple[Suggestion, ...]
    strengths: tuple[str, ...]
    metrics: DiagnosticMetrics

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "strengths": list(self.strengths),
            "metrics": self.metrics.to_dict(),
        }


# ---------------------------------------------------------------------------
# Category classification
# ---------------------------------------------------------------------------

_DEBT_KEYWORDS = (
    "debt", "bond", "liquid", "gilt", "money market", "ultra short",
    "overnight", "floating rate", "credit risk",
)
_HYBRID_KEYWORDS = (
    "hybrid", "balanced", "dynamic asset", "multi asset", "arbitrage", "equity savings",
)
_EQUITY_KEYWORDS = ("equity", "index", "cap", "sector", "thematic")
_LARGE_CAP_KEYWORDS = ("large", "bluechip", "nifty 50", "sensex")
_MID_SMALL_KEYWORDS = ("mid", "small")
_FLEXI_KEYWORDS = ("flexi", "multi", "focused", "contra", "value")


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def asset_class(category: str | None) -> str:
    """Debt / Hybrid / Equity from a free-text fund category."""
    if category is None:
        return "Unknown"
    lower = category.lower()
    if _contains_any(lower, _DEBT_KEYWORDS):
        return "Debt"
    if _contains_any(lower, _HYBRID_KEYWORDS):
        return "Hybrid"
    return "Equity"


def asset_class_breakdown(funds: Sequence[FundSnapshot], weights: PortfolioWeights) -> dict[str, float]:
    """Asset class -> percent of total portfolio weight (2 dp)."""
    totals: dict[str, float] = {}
    for fund in funds:
        cls = asset_class(fund.category or None)
        totals[cls] = totals.get(cls, 0.0) + weights.effective_weight(fund.fund_id)
    grand = sum(totals.values())
    if grand > 0:
        return {k: round(v / grand * 100.0, 2) for k, v in totals.items()}
    return totals


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_fund_house_concentration(funds: Sequence[FundSnapshot]) -> list[Suggestion]:
    if len(funds) <= 1:
        return []
    counts = Counter(f.amc_name for f in funds if f.amc_name)
    concentrated = [amc for amc, n in counts.items() if n / len(funds) >= FUND_HOUSE_CONCENTRATION]
    if not concentrated:
        return []
    names = ", ".join(concentrated)
    return [Suggestion(
        SuggestionCategory.FUND_HOUSE_CONCENTRATION,
        Severity.MEDIUM,
        f"You have high concentration in {names}. Diversify across multiple fund houses "
        "to reduce AMC-specific risks.",
        {"concentrated_amcs": names, "count": len(concentrated)},
    )]


def check_asset_class_diversity(funds: Sequence[FundSnapshot]) -> list[Suggestion]:
    by_class = Counter(asset_class(f.category or None) for f in funds)
    suggestions = []
    enough = len(funds) >= MIN_FUNDS_FOR_DIVERSIFICATION

    if by_class["Equity"] and not by_class["Debt"] and enough:
        suggestions.append(Suggestion(
            SuggestionCategory.NO_DEBT_ALLOCATION,
            Severity.MEDIUM,
            "Your portfolio is 100% equity with no debt allocation. Consider adding debt funds "
            "(corporate bonds, liquid funds) for stability during market corrections, especially "
            "if your investment horizon is under 5 years.",
            {"equity_funds": by_class["Equity"]},
        ))
    if by_class["Debt"] and not by_class["Equity"] and enough:
        suggestions.append(Suggestion(
            SuggestionCategory.NO_EQUITY_ALLOCATION,
            Severity.MEDIUM,
            "Your portfolio is 100% debt with no equity exposure. For long-term wealth creation, "
            "consider adding equity funds (large-cap index or flexi-cap) to beat inflation.",
            {"debt_funds": by_class["Debt"]},
        ))
    if 0 < len(funds) < MIN_FUNDS_FOR_DIVERSIFICATION:
        suggestions.append(Suggestion(
            SuggestionCategory.LACK_OF_DIVERSIFICATION,
            Severity.LOW,
            f"You have only {len(funds)} fund(s). Consider adding more funds across different "
            "categories (large-cap, mid-cap, debt) for better diversification.",
            {"total_funds": len(funds)},
        ))
    return suggestions


def check_over_diversification(funds: Sequence[FundSnapshot]) -> list[Suggestion]:
    if len(funds) <= OVER_DIVERSIFICATION_FUNDS:
        return []
    categories = Counter(f.category for f in funds if f.category)
    crowded = [f"{cat} ({n} funds)" for cat, n in categories.items() if n > 2]
    if crowded:
        detail = (
            "Overlapping categories: " + ", ".join(crowded)
            + ". Consider consolidating to avoid redundancy, higher costs, and diluted returns."
        )
    else:
        detail = "Consider consolidating to 5-7 well-chosen funds."
    return [Suggestion(
        SuggestionCategory.OVER_DIVERSIFICATION,
        Severity.MEDIUM,
        f"Your portfolio has {len(funds)} funds which may lead to over-diversification. {detail}",
        {"total_funds": len(funds), "category_breakdown": dict(categories)},
    )]


def check_sector_concentration(report: DiversificationReport) -> list[Suggestion]:
    top = report.top_sector
    if top is None or top[1] <= SECTOR_CONCENTRATION_PCT:
        return []
    sector, pct = top
    return [Suggestion(
        SuggestionCategory.SECTOR_CONCENTRATION,
        Severity.HIGH,
        f"Your portfolio is heavily concentrated in {sector} ({pct:.1f}%). A downturn in this "
        "sector could significantly impact your returns. Consider rebalancing to spread risk "
        "across multiple sectors.",
        {"sector": sector, "allocation": pct},
    )]


def check_stock_overlap(report: DiversificationReport) -> list[Suggestion]:
    if report.overlap_status == "High":
        count = len(report.overlapping_stocks)
        return [Suggestion(
            SuggestionCategory.STOCK_OVERLAP,
            Severity.HIGH,
            f"High stock overlap detected: {count} stocks appear across multiple funds. You are "
            "paying multiple expense ratios for essentially the same exposure. Consider replacing "
            "overlapping funds with a single diversified fund.",
            {"overlapping_stocks": count, "overlap_status": "High"},
        )]
    if report.overlap_status == "Moderate":
        return [Suggestion(
            SuggestionCategory.STOCK_OVERLAP,
            Severity.LOW,
            "Moderate stock overlap detected across your funds. This is common but worth "
            "monitoring; review if multiple funds hold the same top stocks.",
            {"overlap_status": "Moderate"},
        )]
    return []


def check_expense_ratios(funds: Sequence[FundSnapshot]) -> list[Suggestion]:
    expensive = [
        f"{f.name} ({f.expense_ratio:.2f}%)"
        for f in funds
        if f.expense_ratio is not None and f.expense_ratio > HIGH_EXPENSE_RATIO
    ]
    if not expensive:
        return []
    return [Suggestion(
        SuggestionCategory.HIGH_EXPENSE_RATIO,
        Severity.LOW,
        f"{len(expensive)} fund(s) have expense ratios above {HIGH_EXPENSE_RATIO:.1f}%: "
        f"{'; '.join(expensive)}. Consider switching to direct plans or lower-cost index fund "
        "alternatives.",
        {"high_expense_funds": expensive},
    )]


def check_market_cap_allocation(
    funds: Sequence[FundSnapshot],
    weights: PortfolioWeights,
) -> list[Suggestion]:
    if len(funds) < 2:
        return []
    large = mid_small = flexi = equity = 0.0
    for fund in funds:
        category = (fund.category or "").lower()
        if not _contains_any(category, _EQUITY_KEYWORDS):
            continue
        w = weights.effective_weight(fund.fund_id)
        equity += w
        if _contains_any(category, _LARGE_CAP_KEYWORDS):
            large += w
        elif _contains_any(category, _MID_SMALL_KEYWORDS):
            mid_small += w
        elif _contains_any(category, _FLEXI_KEYWORDS):
            flexi += w

    if equity < MIN_EQUITY_WEIGHT:
        return []
    large, mid_small, flexi = large / equity, mid_small / equity, flexi / equity

    suggestions = []
    if large > LARGE_CAP_SKEW:
        suggestions.append(Suggestion(
            SuggestionCategory.MARKET_CAP_IMBALANCE,
            Severity.MEDIUM,
            f"Your portfolio is heavily skewed towards Large Cap funds ({large * 100:.0f}%). "
            "Consider adding Flexi or Mid Cap funds for better growth potential.",
            {"large_cap_allocation": f"{large * 100:.0f}%"},
        ))
    if mid_small > SMALL_MID_CAP_SKEW:
        suggestions.append(Suggestion(
            SuggestionCategory.MARKET_CAP_IMBALANCE,
            Severity.HIGH,
            f"High risk alert: {mid_small * 100:.0f}% of your equity allocation is in Small/Mid "
            "Cap funds. This can be very volatile. Consider stabilizing with Large Cap or Flexi "
            "Cap funds.",
            {"mid_small_allocation": f"{mid_small * 100:.0f}%"},
        ))
    if flexi > FLEXI_CAP_SKEW:
        suggestions.append(Suggestion(
            SuggestionCategory.MARKET_CAP_IMBALANCE,
            Severity.MEDIUM,
            f"You have a very high allocation to Flexi/Multi Cap funds ({flexi * 100:.0f}%). "
            "While they offer flexibility, ensure the fund managers' styles don't overlap too much.",
            {"flexi_cap_allocation": f"{flexi * 100:.0f}%"},
        ))
    return suggestions


# ---------------------------------------------------------------------------
# Strengths & summary
# ---------------------------------------------------------------------------

def identify_strengths(funds: Sequence[FundSnapshot], metrics: DiagnosticMetrics) -> list[str]:
    strengths = []
    score = metrics.diversification_score
    if score >= 7.0:
        strengths.append(
            f"Excellent diversification score of {score:.1f}/10. Your portfolio is well-spread "
            "across sectors and stocks."
        )
    elif score >= 5.0:
        strengths.append(
            f"Decent diversification score of {score:.1f}/10. Your portfolio has a reasonable "
            "spread across different sectors."
        )

    if metrics.overlap_status == "Low":
        strengths.append(
            "Low stock overlap across your funds. Each fund is adding unique exposure to your portfolio."
        )

    ratios = [f.expense_ratio for f in funds if f.expense_ratio is not None]
    avg_er = sum(ratios) / len(ratios) if ratios else 0.0
    if 0 < avg_er < 0.5:
        strengths.append(
            f"Very low average expense ratio of {avg_er:.2f}%. More of your returns stay in your pocket."
        )
    elif 0 < avg_er < 1.0:
        strengths.append(f"Competitive average expense ratio of {avg_er:.2f}%. Your cost efficiency is good.")

    if len(funds) > 1 and all(f.direct_plan is True for f in funds):
        strengths.append(
            "All your funds are direct plans. This saves ~0.5-1% annually compared to regular plans."
        )

    if len(metrics.asset_class_breakdown) >= 2:
        strengths.append(
            "Your portfolio includes multiple asset classes, which provides natural hedging "
            "during market volatility."
        )

    if not strengths:
        strengths = [
            "You've taken the first step by building a portfolio, which puts you ahead of most investors.",
            "Regular portfolio reviews like this one help you stay on track with your financial goals.",
        ]
    return strengths[:MAX_STRENGTHS]


def template_summary(metrics: DiagnosticMetrics) -> str:
    parts = [f"Your portfolio consists of {metrics.total_funds} fund(s). "]

    breakdown = metrics.asset_class_breakdown
    if len(breakdown) > 1:
        alloc = ", ".join(f"{pct:.0f}% {cls}" for cls, pct in breakdown.items())
        parts.append(f"The allocation is {alloc}. ")
    elif len(breakdown) == 1:
        parts.append(f"The portfolio is entirely {next(iter(breakdown)).lower()}-focused. ")

    parts.append(
        f"Diversification score is {metrics.diversification_score:.1f}/10 "
        f"with {metrics.overlap_status.lower()} stock overlap"
    )
    if metrics.top_sector:
        parts.append(
            f", and the top sector exposure is {metrics.top_sector} "
            f"at {metrics.top_sector_allocation:.1f}%."
        )
    else:
        parts.append(".")
    return "".join(parts)


def empty_diagnostic() -> PortfolioDiagnostic:
    return PortfolioDiagnostic(
        summary="No portfolio holdings found. Add funds to your portfolio to receive a "
                "detailed diagnostic analysis.",
        suggestions=(),
        strengths=("You're exploring portfolio diagnostics, a great first step!",),
        metrics=DiagnosticMetrics(),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_diagnostic(
    funds: Sequence[FundSnapshot],
    weights: Mapping[str, float] | PortfolioWeights,
    report: DiversificationReport | None = None,
) -> PortfolioDiagnostic:
    """Diagnose the active funds of a portfolio.

    Args:
        funds: Portfolio funds; those at or below the minimum weight are ignored.
        weights: Weight fractions keyed by fund id.
        report: Precomputed diversification report, built when omitted.
    """
    weights = PortfolioWeights.coerce(weights)
    active = [f for f in funds if weights.is_active(f.fund_id)]
    if not active:
        return empty_diagnostic()

    report = report or build_diversification_report(active, weights)
    top = report.top_sector or ("", 0.0)
    metrics = DiagnosticMetrics(
        total_funds=len(active),
        fund_house_distribution=dict(Counter(f.amc_name for f in active if f.amc_name)),
        asset_class_breakdown=asset_class_breakdown(active, weights),
        diversification_score=report.diversification_score,
        overlap_status=report.overlap_status,
        sector_concentration=report.sector_concentration,
        top_sector=top[0],
        top_sector_allocation=top[1],
    )

    suggestions = [
        *check_fund_house_concentration(active),
        *check_asset_class_diversity(active),
        *check_over_diversification(active),
        *check_sector_concentration(report),
        *check_stock_overlap(report),
        *check_expense_ratios(active),
        *check_market_cap_allocation(active, weights),
    ]
    suggestions.sort(key=lambda s: _SEVERITY_ORDER[s.severity])
    logger.info("Diagnostic: %d funds, %d suggestions", len(active), len(suggestions))

    return PortfolioDiagnostic(
        summary=template_summary(metrics),
        suggestions=tuple(suggestions),
        strengths=tuple(identify_strengths(active, metrics)),
        metrics=metrics,
    )
