"""Data source modules - fund master-data normalisation."""

from .fund_master import FundSnapshot, TopHolding, extract_risk_metric, load_funds
