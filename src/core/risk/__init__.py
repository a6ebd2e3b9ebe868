from src.core.risk.aggregator import (
    analyze_portfolio_risk,
    overall_risk_score,
    recommendations_for,
    sort_warnings,
)
from src.core.risk.cash import analyze_cash_risk, calculate_cash_balance, cash_warnings
from src.core.risk.concentration import (
    analyze_concentration_risk,
    concentration_warnings,
    diversification_score,
)
from src.core.risk.positions import (
    analyze_position_risks,
    drawdown_breached,
    loss_streak,
    position_warnings,
)
from src.core.risk.sectors import (
    FIXED_SECTOR_BREAKDOWN,
    MappingSectorClassifier,
    SectorClassifier,
)

__all__ = [
    "FIXED_SECTOR_BREAKDOWN",
    "MappingSectorClassifier",
    "SectorClassifier",
    "analyze_cash_risk",
    "analyze_concentration_risk",
    "analyze_portfolio_risk",
    "analyze_position_risks",
    "calculate_cash_balance",
    "cash_warnings",
    "concentration_warnings",
    "diversification_score",
    "drawdown_breached",
    "loss_streak",
    "overall_risk_score",
    "position_warnings",
    "recommendations_for",
    "sort_warnings",
]
