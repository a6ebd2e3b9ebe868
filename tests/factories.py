from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable

from src.core.ledger import SpendLedgerEntry
from src.core.models import CashBalance, Portfolio, Position, RuleSet, TradeOutcome
from src.core.risk_management.models import PortfolioSnapshot

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
PORTFOLIO_ID = "pf_test"


def fixed_clock(now: datetime = NOW):
    return lambda: now


def rule_set(portfolio_id: str = PORTFOLIO_ID, **overrides) -> RuleSet:
    return RuleSet(portfolio_id=portfolio_id, created_at=NOW, updated_at=NOW, **overrides)


def portfolio(portfolio_id: str = PORTFOLIO_ID) -> Portfolio:
    return Portfolio(portfolio_id=portfolio_id, name="Test portfolio", account_id="acc_test")


def position(
    symbol: str,
    quantity: str,
    avg_price: str,
    current_price: str | None = None,
    *,
    portfolio_id: str = PORTFOLIO_ID,
    traded_hours_ago: float = 24 * 30,
) -> Position:
    return Position(
        position_id=f"pos_{symbol.lower()}",
        portfolio_id=portfolio_id,
        symbol=symbol,
        name=symbol,
        quantity=Decimal(quantity),
        avg_price=Decimal(avg_price),
        current_price=Decimal(current_price if current_price is not None else avg_price),
        trade_date=NOW - timedelta(hours=traded_hours_ago),
    )


def cash_balance(total: str, cash: str) -> CashBalance:
    total_balance = Decimal(total)
    invested = total_balance - Decimal(cash)
    utilization = invested / total_balance * 100 if total_balance > 0 else Decimal("0")
    return CashBalance(
        total_balance=total_balance,
        cash_balance=Decimal(cash),
        invested_amount=invested,
        utilization_rate=utilization,
    )


def outcome(
    symbol: str, pnl: str, *, days_ago: int, portfolio_id: str = PORTFOLIO_ID
) -> TradeOutcome:
    return TradeOutcome(
        portfolio_id=portfolio_id,
        symbol=symbol,
        realized_pnl=Decimal(pnl),
        closed_at=NOW - timedelta(days=days_ago),
    )


def ledger_entry(
    amount: str, executed_at: datetime, *, symbol: str = "AAPL", execution_id: str = "exe_1"
) -> SpendLedgerEntry:
    return SpendLedgerEntry(
        portfolio_id=PORTFOLIO_ID,
        symbol=symbol,
        amount=Decimal(amount),
        executed_at=executed_at,
        execution_id=execution_id,
    )


def snapshot(
    *,
    portfolio_id: str = PORTFOLIO_ID,
    total_balance: str | None = "1000000",
    positions: Iterable[Position] | None = None,
    trade_outcomes: Iterable[TradeOutcome] | None = None,
) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        portfolio=portfolio(portfolio_id),
        total_balance=Decimal(total_balance) if total_balance is not None else None,
        positions=list(positions or []),
        trade_outcomes=list(trade_outcomes or []),
    )
