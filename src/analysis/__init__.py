from .weights import PortfolioWeights
from .nav_series import NavSeries, parse_nav_date
from .exposure import aggregate_exposure, summarise_exposure
from .similarity import compute_fund_similarities
from .diversification import DiversificationReport, build_diversification_report
from .returns import RollingReturnsReport, calculate_rolling_returns
from .risk_insights import RiskInsightsReport, calculate_risk_insights
from .covariance import CovarianceReport, calculate_portfolio_covariance
from .wealth_projection import WealthProjection, simulate_wealth, project_portfolio_wealth
from .diagnostics import PortfolioDiagnostic, run_diagnostic
from .engine import PortfolioAnalyticsEngine
