#!/usr/bin/env python3
"""MF-Analyst: Mutual Fund Portfolio Analytics & Risk Simulation.

Portfolio files are JSON: {"funds": [<fund document>, ...], "weights": {"<fund id>": 0.6, ...}}

Usage:
    python main.py overlap data/sample_portfolio.json             # overlap & diversification
    python main.py returns data/sample_portfolio.json FUND_ID     # rolling returns, CAGR, SIP
    python main.py risk data/sample_portfolio.json FUND_ID        # alpha / beta insights
    python main.py covariance data/sample_portfolio.json          # covariance & correlation
    python main.py project data/sample_portfolio.json --amount 100000 --years 10 --seed 7
    python main.py diagnose data/sample_portfolio.json            # rule-based diagnostic
    python main.py report data/sample_portfolio.json --amount 100000 --years 10
    python main.py batch a.json b.json c.json --workers 4         # many portfolios in parallel
"""

import argparse
import json
import sys
from pathlib import Path

from src.config import SETTINGS
from src.data_sources.fund_master import load_funds
from src.analysis.engine import PortfolioAnalyticsEngine
from src.analysis.weights import PortfolioWeights
from src.pipeline.batch import MAX_WORKERS, PortfolioBatchRunner, PortfolioJob
from src.utils.logger import setup_logger

logger = setup_logger("main", SETTINGS.get("app", {}).get("log_level", "INFO"))


def _read_portfolio(path: str, percent: bool = False) -> tuple[list, PortfolioWeights]:
    with open(path) as f:
        doc = json.load(f)
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: expected a JSON object with 'funds' and 'weights'")
    funds = load_funds(doc.get("funds") or [])
    raw = doc.get("weights") or {}
    weights = PortfolioWeights.from_percentages(raw) if percent else PortfolioWeights(raw)
    return funds, weights


def _engine(args) -> PortfolioAnalyticsEngine:
    funds, weights = _read_portfolio(args.portfolio, args.percent)
    return PortfolioAnalyticsEngine(funds, weights)


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def cmd_overlap(args):
    """Overlap and diversification report."""
    _emit(_engine(args).diversification().to_dict())


def cmd_returns(args):
    """Rolling returns for one fund."""
    _emit(_engine(args).rolling_returns(args.fund_id).to_dict())


def cmd_risk(args):
    """Risk insights for one fund."""
    _emit(_engine(args).risk_insights(args.fund_id).to_dict())


def cmd_covariance(args):
    """Portfolio covariance / correlation."""
    _emit(_engine(args).covariance().to_dict())


def cmd_project(args):
    """Monte Carlo wealth projection."""
    projection = _engine(args).wealth_projection(
        args.amount, args.years, seed=args.seed, method=args.method,
    )
    _emit(projection.to_dict())


def cmd_diagnose(args):
    """Rule-based portfolio diagnostic."""
    _emit(_engine(args).diagnostic().to_dict())


def cmd_report(args):
    """All reports in one document."""
    report = _engine(args).full_report(
        amount=args.amount, years=args.years, seed=args.seed, method=args.method,
    )
    _emit(report)


def cmd_batch(args):
    """Full reports for several portfolio files in parallel."""
    jobs = []
    for path in args.portfolios:
        funds, weights = _read_portfolio(path, args.percent)
        jobs.append(PortfolioJob(
            name=Path(path).stem, funds=funds, weights=weights,
            amount=args.amount, years=args.years, method=args.method,
        ))
    result = PortfolioBatchRunner(max_workers=args.workers).run(jobs, seed=args.seed)
    _emit({"reports": result.reports, "errors": result.errors, "timing": result.timing})
    if result.errors:
        sys.exit(1)


def _add_projection_args(p, required: bool):
    p.add_argument("--amount", type=float, required=required, help="Initial investment")
    p.add_argument("--years", type=int, required=required, help="Projection horizon in years")
    p.add_argument("--seed", type=int, default=None, help="Random seed (reproducible runs)")
    p.add_argument("--method", default="history", choices=["history", "metadata"],
                   help="Return assumptions from NAV history or risk metadata")


def main():
    parser = argparse.ArgumentParser(
        description="MF-Analyst: Mutual Fund Portfolio Analytics & Risk Simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--percent", action="store_true",
                        help="Weights in the input are percentages (60 = 0.6)")
    sub = parser.add_subparsers(dest="command", help="Commands")

    # overlap
    p = sub.add_parser("overlap", help="Overlap & diversification report")
    p.add_argument("portfolio", help="Portfolio JSON file")
    p.set_defaults(func=cmd_overlap)

    # returns
    p = sub.add_parser("returns", help="Rolling returns for a fund")
    p.add_argument("portfolio")
    p.add_argument("fund_id")
    p.set_defaults(func=cmd_returns)

    # risk
    p = sub.add_parser("risk", help="Risk insights for a fund")
    p.add_argument("portfolio")
    p.add_argument("fund_id")
    p.set_defaults(func=cmd_risk)

    # covariance
    p = sub.add_parser("covariance", help="Covariance & correlation matrices")
    p.add_argument("portfolio")
    p.set_defaults(func=cmd_covariance)

    # project
    p = sub.add_parser("project", help="Monte Carlo wealth projection")
    p.add_argument("portfolio")
    _add_projection_args(p, required=True)
    p.set_defaults(func=cmd_project)

    # diagnose
    p = sub.add_parser("diagnose", help="Rule-based portfolio diagnostic")
    p.add_argument("portfolio")
    p.set_defaults(func=cmd_diagnose)

    # report
    p = sub.add_parser("report", help="Every report at once")
    p.add_argument("portfolio")
    _add_projection_args(p, required=False)
    p.set_defaults(func=cmd_report)

    # batch
    p = sub.add_parser("batch", help="Analyse several portfolios in parallel")
    p.add_argument("portfolios", nargs="+")
    p.add_argument("--workers", type=int, default=MAX_WORKERS)
    _add_projection_args(p, required=False)
    p.set_defaults(func=cmd_batch)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    try:
        args.func(args)
    except (ValueError, OSError, json.JSONDecodeError) as e:
        logger.error("%s", e)
        sys.exit(2)


if __name__ == "__main__":
    main()
