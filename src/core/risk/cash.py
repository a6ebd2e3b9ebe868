"""
Cash balance derivation and cash adequacy analytics.
"""

from decimal import ROUND_FLOOR, Decimal
from typing import List, Optional, Sequence

from src.core.models import CashBalance, CashRisk, Position, RiskLevel, RiskWarning, RuleSet

_HUNDRED = Decimal("100")
_MEDIUM_RESERVE_FACTOR = Decimal("1.5")
FALLBACK_DAILY_INVESTMENT_RATE = Decimal("100000")


def calculate_cash_balance(
    total_balance: Optional[Decimal], positions: Sequence[Position]
) -> Optional[CashBalance]:
    """
    Derives cash figures from the account total and open positions at cost basis.
    Returns None when the account never recorded a total balance.
    """
    if total_balance is None:
        return None
    invested = sum((pos.cost for pos in positions), Decimal("0"))
    utilization = invested / total_balance * _HUNDRED if total_balance > 0 else Decimal("0")
    return CashBalance(
        total_balance=total_balance,
        cash_balance=total_balance - invested,
        invested_amount=invested,
        utilization_rate=utilization,
    )


def cash_ratio(cash: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return Decimal("0")
    return cash / total * _HUNDRED


def _risk_for_ratio(ratio: Decimal, min_reserve: Decimal) -> RiskLevel:
    if ratio < min_reserve:
        return "HIGH"
    if ratio < min_reserve * _MEDIUM_RESERVE_FACTOR:
        return "MEDIUM"
    return "LOW"


def analyze_cash_risk(cash_balance: Optional[CashBalance], rule_set: RuleSet) -> CashRisk:
    if cash_balance is None:
        # Unknown cash state is treated as maximally risky.
        return CashRisk(
            current_cash_ratio=Decimal("0"),
            recommended_cash_ratio=rule_set.min_cash_reserve,
            utilization_rate=_HUNDRED,
            risk="HIGH",
            days_until_cash_out=0,
        )

    ratio = cash_ratio(cash_balance.cash_balance, cash_balance.total_balance)
    daily_rate = rule_set.max_daily_investment or FALLBACK_DAILY_INVESTMENT_RATE
    days = (max(cash_balance.cash_balance, Decimal("0")) / daily_rate).to_integral_value(
        rounding=ROUND_FLOOR
    )

    return CashRisk(
        current_cash_ratio=ratio,
        recommended_cash_ratio=rule_set.min_cash_reserve,
        utilization_rate=cash_balance.utilization_rate,
        risk=_risk_for_ratio(ratio, rule_set.min_cash_reserve),
        days_until_cash_out=int(days),
    )


def cash_warnings(risk: CashRisk) -> List[RiskWarning]:
    if risk.risk != "HIGH":
        return []
    return [
        RiskWarning(
            id="cash-risk",
            type="HIGH",
            category="CASH",
            title="Low cash reserve",
            message=f"Cash ratio is {risk.current_cash_ratio:.1f}%, which is very low.",
            recommendation=f"Keep at least {risk.recommended_cash_ratio}% in cash.",
            can_proceed=True,
        )
    ]
