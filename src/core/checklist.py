"""
FILE: src/core/checklist.py
Pre-purchase checklist: six independent checks aggregated into a proceed/block verdict.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from src.core.ledger import SpendWindow
from src.core.models import (
    CashBalance,
    ChecklistItem,
    InvestmentChecklist,
    Position,
    RiskAnalysis,
    RiskLevel,
    RiskWarning,
    RuleSet,
    TradeOutcome,
)
from src.core.risk.cash import cash_ratio
from src.core.risk.concentration import share_of
from src.core.risk.positions import drawdown_breached, loss_streak

_WARNING_CATEGORY = {
    "CASH": "CASH",
    "POSITION": "POSITION",
    "PORTFOLIO": "CONCENTRATION",
}
_SECONDS_PER_HOUR = 3600


def _find_position(positions: Sequence[Position], symbol: str) -> Optional[Position]:
    return next((pos for pos in positions if pos.symbol == symbol), None)


def _post_purchase_portfolio_value(
    positions: Sequence[Position], planned_amount: Decimal, cash_balance: Optional[CashBalance]
) -> Decimal:
    # A purchase converts cash into a position, so the account total is unchanged by it.
    invested_after = sum((pos.value for pos in positions), Decimal("0")) + planned_amount
    if cash_balance is None or cash_balance.total_balance <= 0:
        return invested_after
    return max(cash_balance.total_balance, invested_after)


def warning_from_check(check: ChecklistItem) -> RiskWarning:
    return RiskWarning(
        id=check.id,
        type="HIGH" if check.status == "FAIL" else "MEDIUM",
        category=_WARNING_CATEGORY.get(check.category, "RULE_VIOLATION"),
        title=check.title,
        message=check.message,
        recommendation=check.recommendation or "",
        can_proceed=not check.is_blocking,
    )


def overall_checklist_risk(checks: Sequence[ChecklistItem]) -> RiskLevel:
    blocking = [c for c in checks if c.status == "FAIL" and c.is_blocking]
    warning_count = sum(1 for c in checks if c.status == "WARNING")
    if blocking:
        return "HIGH"
    if warning_count > 2:
        return "HIGH"
    if warning_count > 0:
        return "MEDIUM"
    return "LOW"


class ChecklistEngine:
    """
    Evaluates the pre-purchase checks against a prospective purchase.
    Every check always emits an item; only blocking FAIL items stop execution.
    """

    @staticmethod
    def check_cash_availability(
        cash_balance: Optional[CashBalance], planned_amount: Decimal, rule_set: RuleSet
    ) -> ChecklistItem:
        title = "Cash availability"
        if cash_balance is None:
            return ChecklistItem(
                id="cash-availability",
                category="CASH",
                title=title,
                status="FAIL",
                message="Insufficient cash information: cash balance is unavailable.",
                recommendation="Record the account balance before investing.",
                is_blocking=True,
            )

        if planned_amount > cash_balance.cash_balance:
            return ChecklistItem(
                id="cash-availability",
                category="CASH",
                title=title,
                status="FAIL",
                message=f"Insufficient cash balance ({cash_balance.cash_balance:,}).",
                recommendation="Reduce the amount or deposit more cash.",
                is_blocking=True,
            )

        after_ratio = cash_ratio(
            cash_balance.cash_balance - planned_amount, cash_balance.total_balance
        )
        if after_ratio < rule_set.min_cash_reserve:
            return ChecklistItem(
                id="cash-availability",
                category="CASH",
                title=title,
                status="WARNING",
                message=(
                    f"Cash ratio after investing would be {after_ratio:.1f}%, below the "
                    f"recommended {rule_set.min_cash_reserve}%."
                ),
                recommendation="Keep a cash reserve for emergencies.",
            )

        return ChecklistItem(
            id="cash-availability",
            category="CASH",
            title=title,
            status="PASS",
            message="Sufficient cash is available.",
        )

    @staticmethod
    def check_position_size(
        positions: Sequence[Position],
        symbol: str,
        planned_amount: Decimal,
        rule_set: RuleSet,
        cash_balance: Optional[CashBalance] = None,
    ) -> ChecklistItem:
        title = "Position size"
        existing = _find_position(positions, symbol)
        portfolio_value = _post_purchase_portfolio_value(positions, planned_amount, cash_balance)
        new_value = (existing.value if existing else Decimal("0")) + planned_amount
        new_share = share_of(new_value, portfolio_value)

        if new_value > rule_set.max_position_amount:
            return ChecklistItem(
                id="position-size",
                category="POSITION",
                title=title,
                status="FAIL",
                message=(
                    f"Position value would exceed the single-symbol maximum "
                    f"({rule_set.max_position_amount:,})."
                ),
                recommendation="Reduce the amount or adjust the position limit.",
                is_blocking=True,
            )

        if new_share > rule_set.max_position_size:
            return ChecklistItem(
                id="position-size",
                category="POSITION",
                title=title,
                status="WARNING",
                message=(
                    f"Position share may exceed the single-symbol maximum "
                    f"({rule_set.max_position_size}%)."
                ),
                recommendation="Adjust the amount to limit concentration.",
            )

        return ChecklistItem(
            id="position-size",
            category="POSITION",
            title=title,
            status="PASS",
            message="Position size is within limits.",
        )

    @staticmethod
    def check_investment_limits(
        planned_amount: Decimal, rule_set: RuleSet, spend: SpendWindow
    ) -> ChecklistItem:
        title = "Investment limits"
        if spend.daily + planned_amount > rule_set.max_daily_investment:
            return ChecklistItem(
                id="investment-limits",
                category="RULES",
                title=title,
                status="WARNING",
                message=(
                    f"Daily investment limit ({rule_set.max_daily_investment:,}) would be "
                    f"exceeded; already spent today: {spend.daily:,}."
                ),
                recommendation="Split the purchase across several days.",
            )
        if spend.monthly + planned_amount > rule_set.max_monthly_investment:
            return ChecklistItem(
                id="investment-limits",
                category="RULES",
                title=title,
                status="WARNING",
                message=(
                    f"Monthly investment limit ({rule_set.max_monthly_investment:,}) would be "
                    f"exceeded; already spent this month: {spend.monthly:,}."
                ),
                recommendation="Defer part of the purchase to next month.",
            )
        return ChecklistItem(
            id="investment-limits",
            category="RULES",
            title=title,
            status="PASS",
            message="Within investment limits.",
        )

    @staticmethod
    def check_cooldown_period(
        positions: Sequence[Position], symbol: str, rule_set: RuleSet, now: datetime
    ) -> ChecklistItem:
        title = "Re-entry cooldown"
        existing = _find_position(positions, symbol)
        if existing is not None:
            hours_since = (now - existing.trade_date).total_seconds() / _SECONDS_PER_HOUR
            if hours_since < rule_set.cooldown_period:
                remaining = math.ceil(rule_set.cooldown_period - hours_since)
                return ChecklistItem(
                    id="cooldown-period",
                    category="RULES",
                    title=title,
                    status="WARNING",
                    message=f"{remaining} hours remain before re-buying {symbol}.",
                    recommendation="Allow time before adding to the same symbol.",
                )
        return ChecklistItem(
            id="cooldown-period",
            category="RULES",
            title=title,
            status="PASS",
            message="Cooldown period satisfied.",
        )

    @staticmethod
    def check_consecutive_losses(
        positions: Sequence[Position],
        symbol: str,
        rule_set: RuleSet,
        outcomes: Sequence[TradeOutcome] = (),
    ) -> ChecklistItem:
        title = "Loss guard"
        mode = rule_set.loss_guard_mode
        existing = _find_position(positions, symbol)

        if mode in ("DRAWDOWN", "DRAWDOWN_OR_STREAK") and existing is not None:
            if drawdown_breached(existing, rule_set):
                loss = abs(existing.unrealized_return_pct)
                return ChecklistItem(
                    id="consecutive-losses",
                    category="POSITION",
                    title=title,
                    status="WARNING",
                    message=f"{symbol} is currently at a {loss:.1f}% loss.",
                    recommendation="Review the stop-loss before averaging down.",
                )

        if mode in ("STREAK", "DRAWDOWN_OR_STREAK"):
            streak = loss_streak(outcomes)
            if rule_set.max_consecutive_losses > 0 and streak >= rule_set.max_consecutive_losses:
                return ChecklistItem(
                    id="consecutive-losses",
                    category="POSITION",
                    title=title,
                    status="WARNING",
                    message=f"{symbol} has {streak} consecutive losing trades.",
                    recommendation="Pause and review the strategy before buying again.",
                )

        return ChecklistItem(
            id="consecutive-losses",
            category="POSITION",
            title=title,
            status="PASS",
            message="Losses are within limits.",
        )

    @staticmethod
    def check_portfolio_risk(risk_analysis: RiskAnalysis, rule_set: RuleSet) -> ChecklistItem:
        title = "Portfolio risk"
        if risk_analysis.risk_score > rule_set.max_portfolio_risk:
            return ChecklistItem(
                id="portfolio-risk",
                category="PORTFOLIO",
                title=title,
                status="WARNING",
                message=(
                    f"Portfolio risk ({risk_analysis.risk_score}) exceeds the allowed "
                    f"level ({rule_set.max_portfolio_risk})."
                ),
                recommendation="Rebalance or diversify to lower portfolio risk.",
            )
        return ChecklistItem(
            id="portfolio-risk",
            category="PORTFOLIO",
            title=title,
            status="PASS",
            message="Portfolio risk is acceptable.",
        )

    @staticmethod
    def evaluate(
        *,
        portfolio_id: str,
        symbol: str,
        planned_amount: Decimal,
        positions: Sequence[Position],
        cash_balance: Optional[CashBalance],
        rule_set: RuleSet,
        risk_analysis: RiskAnalysis,
        spend: SpendWindow,
        now: datetime,
        outcomes: Sequence[TradeOutcome] = (),
    ) -> InvestmentChecklist:
        checks: List[ChecklistItem] = [
            ChecklistEngine.check_cash_availability(cash_balance, planned_amount, rule_set),
            ChecklistEngine.check_position_size(
                positions, symbol, planned_amount, rule_set, cash_balance
            ),
            ChecklistEngine.check_investment_limits(planned_amount, rule_set, spend),
            ChecklistEngine.check_cooldown_period(positions, symbol, rule_set, now),
            ChecklistEngine.check_consecutive_losses(positions, symbol, rule_set, outcomes),
            ChecklistEngine.check_portfolio_risk(risk_analysis, rule_set),
        ]
        warnings = [warning_from_check(c) for c in checks if c.status in ("WARNING", "FAIL")]

        return InvestmentChecklist(
            portfolio_id=portfolio_id,
            symbol=symbol,
            planned_amount=planned_amount,
            checks=checks,
            overall_risk=overall_checklist_risk(checks),
            can_proceed=not any(c.status == "FAIL" and c.is_blocking for c in checks),
            warnings=warnings,
            evaluated_at=now,
        )
