"""Tests for src.data_sources.fund_master -- document normalisation and metric lookup."""

import pytest

from src.data_sources.fund_master import (
    FundSnapshot,
    extract_risk_metric,
    load_funds,
    lookup_metric,
)


class TestFromDocument:

    def test_camel_case_document(self):
        fund = FundSnapshot.from_document({
            "fundId": "F1",
            "fundName": "Fund One",
            "fundCategory": "Large Cap",
            "sectorAllocation": {"Finance": 30.5},
            "topHoldings": [{"securityId": "S1", "securityName": "Stock", "weightPct": 4.2}],
            "navHistory": {"2023-01-01": 10},
            "expenseRatio": "0.75",
        })
        assert fund.fund_id == "F1"
        assert fund.name == "Fund One"
        assert fund.category == "Large Cap"
        assert dict(fund.sector_allocation) == {"Finance": 30.5}
        assert fund.top_holdings[0].weight_pct == 4.2
        assert fund.expense_ratio == 0.75
        assert fund.nav_history == {"2023-01-01": 10}

    def test_snake_case_aliases(self):
        fund = FundSnapshot.from_document({
            "fund_id": "F2",
            "top_holdings": [{"isin": "INE1", "name": "X", "weighting": 3}],
            "sector_allocation": {"IT": 12},
        })
        assert fund.name == "F2"
        assert fund.top_holdings[0].security_id == "INE1"
        assert fund.top_holdings[0].weight_pct == 3.0

    def test_missing_fields_are_tolerated(self):
        fund = FundSnapshot.from_document({
            "fundId": "F3", "sectorAllocation": None, "topHoldings": None, "navHistory": None,
        })
        assert fund.top_holdings == ()
        assert dict(fund.sector_allocation) == {}
        assert dict(fund.nav_history) == {}
        assert fund.expense_ratio is None

    def test_malformed_holdings_and_sectors(self):
        fund = FundSnapshot.from_document({
            "fundId": "F4",
            "topHoldings": "not a list",
            "sectorAllocation": ["not", "a", "mapping"],
        })
        assert fund.top_holdings == ()
        assert dict(fund.sector_allocation) == {}

    def test_null_holding_weight_defaults_to_zero(self):
        fund = FundSnapshot.from_document({
            "fundId": "F5", "topHoldings": [{"securityId": "S", "weightPct": None}, "junk"],
        })
        assert len(fund.top_holdings) == 1
        assert fund.top_holdings[0].weight_pct == 0.0

    def test_nav_history_fallback_locations(self):
        nested = FundSnapshot.from_document({
            "fundId": "F6", "fundMetadata": {"nav_history": {"2023-01-01": 1}},
        })
        deeper = FundSnapshot.from_document({
            "fundId": "F7", "fundMetadata": {"mstarpy_metadata": {"nav_history": {"2023-01-01": 2}}},
        })
        assert nested.nav_history == {"2023-01-01": 1}
        assert deeper.nav_history == {"2023-01-01": 2}

    @pytest.mark.parametrize("doc", [{}, {"fundId": ""}, {"fundId": None}, "string", None])
    def test_missing_id_raises(self, doc):
        with pytest.raises(ValueError):
            FundSnapshot.from_document(doc)

    def test_snapshot_is_read_only(self):
        fund = FundSnapshot.from_document({"fundId": "F8", "sectorAllocation": {"IT": 1}})
        with pytest.raises(TypeError):
            fund.sector_allocation["IT"] = 99


class TestLoadFunds:

    def test_duplicate_ids_raise(self):
        with pytest.raises(ValueError, match="Duplicate"):
            load_funds([{"fundId": "A"}, {"fundId": "A"}])

    def test_preserves_order(self):
        funds = load_funds([{"fundId": "B"}, {"fundId": "A"}])
        assert [f.fund_id for f in funds] == ["B", "A"]


class TestMetricLookup:

    def test_root_level_wins(self):
        meta = {"alpha": 1.0, "mstarpy_metadata": {"alpha": 2.0}}
        assert extract_risk_metric(meta, "alpha") == 1.0

    def test_nested_metadata(self):
        assert extract_risk_metric({"mstarpy_metadata": {"beta": 0.9}}, "beta") == 0.9

    def test_risk_volatility_path(self):
        meta = {"risk_volatility": {"fund_risk_volatility": {"for3Year": {"standardDeviation": 15.5}}}}
        assert extract_risk_metric(meta, "std_dev") == 15.5

    def test_null_values_are_skipped(self):
        meta = {"sharpe_ratio": None, "mstarpy_metadata": {"sharpeRatio": 1.2}}
        assert extract_risk_metric(meta, "sharpe_ratio") == 1.2

    def test_alias_order_is_key_major(self):
        # "stdev" nested outranks "standardDeviation" at the root
        meta = {"standardDeviation": 10.0, "mstarpy_metadata": {"stdev": 12.0}}
        assert extract_risk_metric(meta, "std_dev") == 12.0

    def test_non_numeric_is_ignored(self):
        assert lookup_metric({"alpha": "n/a"}, "alpha") is None

    def test_missing_metadata(self):
        assert extract_risk_metric(None, "alpha") is None
        assert extract_risk_metric({}, "beta") is None

    def test_unknown_metric_raises(self):
        with pytest.raises(ValueError, match="Unknown risk metric"):
            extract_risk_metric({}, "gamma")
