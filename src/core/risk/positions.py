"""
Per-position risk scoring and loss tracking.
"""

from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence

from src.core.models import Position, PositionRisk, RiskWarning, RuleSet, TradeOutcome

BASE_POSITION_SCORE = 5
SEVERE_DRAWDOWN_PCT = Decimal("-20")
HIGH_RISK_WARNING_SCORE = 8


def clamp_score(score: int) -> int:
    return min(10, max(1, score))


def drawdown_breached(position: Position, rule_set: RuleSet) -> bool:
    """Current unrealized loss is deeper than the stop-loss threshold."""
    return position.unrealized_return_pct < -rule_set.stop_loss_percentage


def loss_streak(outcomes: Iterable[TradeOutcome]) -> int:
    """Count of consecutive realized losses, most recent first."""
    streak = 0
    for outcome in sorted(outcomes, key=lambda item: item.closed_at, reverse=True):
        if outcome.realized_pnl >= 0:
            break
        streak += 1
    return streak


def rule_violations(position: Position, rule_set: RuleSet) -> List[str]:
    violations = []
    if position.value > rule_set.max_position_amount:
        violations.append(f"Exceeds max position amount ({rule_set.max_position_amount:,})")
    return violations


def score_position(position: Position, rule_set: RuleSet, violations: Sequence[str]) -> int:
    score = BASE_POSITION_SCORE
    current_return = position.unrealized_return_pct
    if current_return < -rule_set.stop_loss_percentage:
        score += 2
    if current_return < SEVERE_DRAWDOWN_PCT:
        score += 2
    if violations:
        score += 1
    return clamp_score(score)


def analyze_position_risks(
    positions: Sequence[Position],
    rule_set: RuleSet,
    outcomes_by_symbol: Optional[Mapping[str, Sequence[TradeOutcome]]] = None,
) -> List[PositionRisk]:
    outcomes_by_symbol = outcomes_by_symbol or {}
    risks = []
    for pos in positions:
        violations = rule_violations(pos, rule_set)
        risks.append(
            PositionRisk(
                position_id=pos.position_id,
                symbol=pos.symbol,
                name=pos.name,
                current_return=pos.unrealized_return_pct,
                risk_score=score_position(pos, rule_set, violations),
                consecutive_losses=loss_streak(outcomes_by_symbol.get(pos.symbol, ())),
                last_trade_date=pos.trade_date,
                violates_rules=violations,
            )
        )
    return risks


def position_warnings(position_risks: Sequence[PositionRisk]) -> List[RiskWarning]:
    return [
        RiskWarning(
            id=f"position-risk-{risk.symbol}",
            type="HIGH",
            category="POSITION",
            title="Position risk",
            message=f"{risk.symbol} carries a high risk score ({risk.risk_score}/10).",
            recommendation="Reduce the position or consider a stop-loss.",
            can_proceed=True,
        )
        for risk in position_risks
        if risk.risk_score >= HIGH_RISK_WARNING_SCORE
    ]
