"""
FILE: src/core/risk/aggregator.py
Combines concentration, cash and position analytics into one portfolio risk view.
"""

from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence

from src.core.models import (
    CashBalance,
    CashRisk,
    ConcentrationRisk,
    Position,
    PositionRisk,
    RiskAnalysis,
    RiskWarning,
    RuleSet,
    TradeOutcome,
)
from src.core.risk.cash import analyze_cash_risk, cash_warnings
from src.core.risk.concentration import analyze_concentration_risk, concentration_warnings
from src.core.risk.positions import analyze_position_risks, clamp_score, position_warnings
from src.core.risk.sectors import SectorClassifier

_WARNING_PRIORITY = {"HIGH": 1, "MEDIUM": 2, "LOW": 3}
HIGH_RISK_POSITION_SCORE = 7
MAX_POSITION_SCORE_CONTRIBUTION = 2


def overall_risk_score(
    concentration_risk: ConcentrationRisk,
    cash_risk: CashRisk,
    position_risks: Sequence[PositionRisk],
) -> int:
    score = 5

    # An empty portfolio holds nothing to be concentrated in.
    if concentration_risk.top_positions:
        if concentration_risk.diversification_score < 3:
            score += 2
        elif concentration_risk.diversification_score < 5:
            score += 1

    if cash_risk.risk == "HIGH":
        score += 2
    elif cash_risk.risk == "MEDIUM":
        score += 1

    high_risk_positions = sum(
        1 for risk in position_risks if risk.risk_score >= HIGH_RISK_POSITION_SCORE
    )
    score += min(MAX_POSITION_SCORE_CONTRIBUTION, high_risk_positions)

    return clamp_score(score)


def sort_warnings(warnings: Iterable[RiskWarning]) -> List[RiskWarning]:
    return sorted(warnings, key=lambda warning: _WARNING_PRIORITY.get(warning.type, 4))


def recommendations_for(
    risk_score: int, concentration_risk: ConcentrationRisk, cash_risk: CashRisk
) -> List[str]:
    recommendations = []
    if risk_score >= 7:
        recommendations.append("Portfolio risk is high. Consider rebalancing the portfolio.")
    if concentration_risk.diversification_score < 5:
        recommendations.append("Diversification is low. Spread holdings across more symbols.")
    if cash_risk.risk == "HIGH":
        recommendations.append("Raise the cash ratio to restore a safety buffer.")
    return recommendations


def analyze_portfolio_risk(
    *,
    portfolio_id: str,
    positions: Sequence[Position],
    rule_set: RuleSet,
    cash_balance: Optional[CashBalance],
    analysis_date: datetime,
    sector_classifier: Optional[SectorClassifier] = None,
    outcomes_by_symbol: Optional[Mapping[str, Sequence[TradeOutcome]]] = None,
) -> RiskAnalysis:
    concentration_risk = analyze_concentration_risk(positions, rule_set, sector_classifier)
    cash_risk = analyze_cash_risk(cash_balance, rule_set)
    position_risks = analyze_position_risks(positions, rule_set, outcomes_by_symbol)

    warnings: List[RiskWarning] = []
    if rule_set.enable_warnings:
        warnings.extend(
            concentration_warnings(
                concentration_risk, sectors_classified=sector_classifier is not None
            )
        )
        warnings.extend(cash_warnings(cash_risk))
        warnings.extend(position_warnings(position_risks))

    risk_score = overall_risk_score(concentration_risk, cash_risk, position_risks)

    return RiskAnalysis(
        portfolio_id=portfolio_id,
        risk_score=risk_score,
        warnings=sort_warnings(warnings),
        recommendations=recommendations_for(risk_score, concentration_risk, cash_risk),
        concentration_risk=concentration_risk,
        cash_risk=cash_risk,
        position_risks=position_risks,
        analysis_date=analysis_date,
    )
