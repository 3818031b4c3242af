"""Fund master-data documents - normalisation into read-only fund snapshots.

The enrichment pipeline delivers one semi-structured document per fund
(sector weights, top holdings, NAV history, risk metadata).  Field names
vary between enrichment sources, so every field is resolved through a short
list of known aliases.  Any subset of fields may be missing or null.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from src.utils.logger import setup_logger
from src.utils.numeric import safe_float

logger = setup_logger("fund_master")

# ---------------------------------------------------------------------------
# Risk-metadata lookup
# ---------------------------------------------------------------------------

NESTED_METADATA_KEY = "mstarpy_metadata"
RISK_VOLATILITY_PATH = ("risk_volatility", "fund_risk_volatility", "for3Year")

METRIC_ALIASES: dict[str, tuple[str, ...]] = {
    "alpha": ("alpha",),
    "beta": ("beta",),
    "sharpe_ratio": ("sharpe_ratio", "sharpeRatio"),
    "std_dev": ("stdev", "standardDeviation", "std_dev"),
}

MetadataScope = Callable[[Mapping], Any]


def _dig(doc: Any, *path: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    node = doc
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


# Scopes are tried in priority order: root, one level of nesting, fixed path.
METADATA_SCOPES: tuple[MetadataScope, ...] = (
    lambda doc: doc,
    lambda doc: _dig(doc, NESTED_METADATA_KEY),
    lambda doc: _dig(doc, *RISK_VOLATILITY_PATH),
)


def lookup_metric(metadata: Mapping | None, *keys: str) -> float | None:
    """Return the first present, non-null numeric value for *keys*.

    For every alias key the scopes in ``METADATA_SCOPES`` are tried in
    order; the first hit wins.
    """
    if not isinstance(metadata, Mapping):
        return None
    for key in keys:
        for scope in METADATA_SCOPES:
            node = scope(metadata)
            if not isinstance(node, Mapping):
                continue
            value = safe_float(node.get(key))
            if value is not None:
                return value
    return None


def extract_risk_metric(metadata: Mapping | None, metric: str) -> float | None:
    """Look up a named risk metric (alpha, beta, sharpe_ratio, std_dev)."""
    try:
        aliases = METRIC_ALIASES[metric]
    except KeyError:
        raise ValueError(f"Unknown risk metric '{metric}'") from None
    return lookup_metric(metadata, *aliases)


# ---------------------------------------------------------------------------
# Document field aliases
# ---------------------------------------------------------------------------

_ID_KEYS = ("fundId", "fund_id", "id")
_NAME_KEYS = ("fundName", "fund_name", "name")
_CATEGORY_KEYS = ("fundCategory", "fund_category", "category")
_AMC_KEYS = ("amcName", "amc_name")
_EXPENSE_KEYS = ("expenseRatio", "expense_ratio")
_DIRECT_KEYS = ("directPlan", "direct_plan")
_SECTOR_KEYS = ("sectorAllocation", "sector_allocation")
_HOLDINGS_KEYS = ("topHoldings", "top_holdings")
_NAV_KEYS = ("navHistory", "nav_history")
_METADATA_KEYS = ("fundMetadata", "fund_metadata", "metadata")

_SECURITY_ID_KEYS = ("securityId", "security_id", "isin")
_SECURITY_NAME_KEYS = ("securityName", "security_name", "name")
_HOLDING_WEIGHT_KEYS = ("weightPct", "weight_pct", "weighting")


def _first(doc: Mapping, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = doc.get(key)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class TopHolding:
    security_id: str
    security_name: str
    weight_pct: float


def _parse_holdings(raw: Any, fund_name: str) -> tuple[TopHolding, ...]:
    if not isinstance(raw, (list, tuple)):
        if raw is not None:
            logger.warning("Ignoring non-list top holdings for %s", fund_name)
        return ()
    holdings = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        security_id = _first(entry, _SECURITY_ID_KEYS)
        security_id = str(security_id).strip() if security_id is not None else ""
        name = _first(entry, _SECURITY_NAME_KEYS)
        holdings.append(TopHolding(
            security_id=security_id,
            security_name=str(name) if name is not None else "",
            weight_pct=safe_float(_first(entry, _HOLDING_WEIGHT_KEYS), 0.0),
        ))
    return tuple(holdings)


def _parse_sectors(raw: Any, fund_name: str) -> Mapping[str, float]:
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning("Ignoring non-mapping sector allocation for %s", fund_name)
        return MappingProxyType({})
    sectors = {
        str(sector): safe_float(pct, 0.0)
        for sector, pct in raw.items()
        if sector is not None and str(sector) != ""
    }
    return MappingProxyType(sectors)


def _find_nav_history(doc: Mapping, metadata: Any) -> Mapping | None:
    for candidate in (
        _first(doc, _NAV_KEYS),
        _dig(metadata, "nav_history"),
        _dig(metadata, NESTED_METADATA_KEY, "nav_history"),
    ):
        if isinstance(candidate, Mapping):
            return candidate
    return None


@dataclass(frozen=True)
class FundSnapshot:
    """Read-only view of one fund's enrichment payload."""

    fund_id: str
    name: str
    category: str = ""
    sector_allocation: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    top_holdings: tuple[TopHolding, ...] = ()
    nav_history: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    # Catalogue attributes (diagnostics only)
    amc_name: str | None = None
    expense_ratio: float | None = None
    direct_plan: bool | None = None

    @classmethod
    def from_document(cls, doc: Mapping) -> FundSnapshot:
        """Normalise an enrichment document.

        Raises:
            ValueError: if *doc* is not a mapping or carries no fund id.
        """
        if not isinstance(doc, Mapping):
            raise ValueError("Fund document must be a mapping")
        fund_id = _first(doc, _ID_KEYS)
        if fund_id is None or str(fund_id).strip() == "":
            raise ValueError("Fund document has no fund id")
        fund_id = str(fund_id).strip()
        name = _first(doc, _NAME_KEYS)
        name = str(name) if name is not None else fund_id

        metadata = _first(doc, _METADATA_KEYS)
        if not isinstance(metadata, Mapping):
            metadata = {}
        nav_history = _find_nav_history(doc, metadata) or {}

        direct = _first(doc, _DIRECT_KEYS)
        category = _first(doc, _CATEGORY_KEYS)
        amc = _first(doc, _AMC_KEYS)

        return cls(
            fund_id=fund_id,
            name=name,
            category=str(category) if category is not None else "",
            sector_allocation=_parse_sectors(_first(doc, _SECTOR_KEYS), name),
            top_holdings=_parse_holdings(_first(doc, _HOLDINGS_KEYS), name),
            nav_history=MappingProxyType(dict(nav_history)),
            metadata=MappingProxyType(dict(metadata)),
            amc_name=str(amc) if amc is not None else None,
            expense_ratio=safe_float(_first(doc, _EXPENSE_KEYS)),
            direct_plan=bool(direct) if direct is not None else None,
        )

    def risk_metric(self, metric: str) -> float | None:
        return extract_risk_metric(self.metadata, metric)


def load_funds(documents: list[Mapping]) -> list[FundSnapshot]:
    """Normalise a list of documents, rejecting duplicate fund ids."""
    funds: list[FundSnapshot] = []
    seen: set[str] = set()
    for doc in documents:
        fund = FundSnapshot.from_document(doc)
        if fund.fund_id in seen:
            raise ValueError(f"Duplicate fund id '{fund.fund_id}'")
        seen.add(fund.fund_id)
        funds.append(fund)
    return funds
