"""Portfolio weight vector keyed by fund id."""

from __future__ import annotations

import math
from typing import Iterator, Mapping

from src.config import section

MIN_WEIGHT: float = float(section("portfolio").get("min_weight", 0.0001))


class PortfolioWeights(Mapping[str, float]):
    """Immutable fund id -> weight fraction mapping.

    The sum need not be 1.0.  Entries at or below ``MIN_WEIGHT`` are kept
    but treated as absent by every aggregation (see :meth:`is_active`).
    """

    def __init__(self, weights: Mapping[str, float] | None = None) -> None:
        clean: dict[str, float] = {}
        for fund_id, raw in (weights or {}).items():
            try:
                w = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"Weight for '{fund_id}' is not numeric: {raw!r}") from None
            if math.isnan(w) or math.isinf(w):
                raise ValueError(f"Weight for '{fund_id}' is not finite")
            if w < 0:
                raise ValueError(f"Weight for '{fund_id}' is negative: {w}")
            if w > 1.0 + 1e-9:
                raise ValueError(
                    f"Weight for '{fund_id}' is {w}; weights are fractions in [0, 1]"
                )
            clean[str(fund_id)] = w
        self._weights = clean

    @classmethod
    def coerce(cls, weights: Mapping[str, float] | PortfolioWeights) -> PortfolioWeights:
        if isinstance(weights, PortfolioWeights):
            return weights
        return cls(weights)

    @classmethod
    def from_percentages(cls, pct: Mapping[str, float]) -> PortfolioWeights:
        """Build from percent-of-portfolio values (60 -> 0.6)."""
        return cls({k: float(v) / 100.0 for k, v in pct.items()})

    def __getitem__(self, fund_id: str) -> float:
        return self._weights[fund_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"PortfolioWeights({self._weights!r})"

    def weight_of(self, fund_id: str) -> float:
        """Weight for *fund_id*.

        Raises:
            ValueError: if *fund_id* is not part of this weight vector.
        """
        try:
            return self._weights[fund_id]
        except KeyError:
            raise ValueError(f"Fund '{fund_id}' is not in the portfolio weight map") from None

    def is_active(self, fund_id: str) -> bool:
        return self.weight_of(fund_id) > MIN_WEIGHT

    def effective_weight(self, fund_id: str) -> float:
        """Weight with sub-threshold entries collapsed to zero."""
        w = self.weight_of(fund_id)
        return w if w > MIN_WEIGHT else 0.0

    @property
    def total(self) -> float:
        return sum(w for w in self._weights.values() if w > MIN_WEIGHT)
