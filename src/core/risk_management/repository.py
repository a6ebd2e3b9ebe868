from decimal import Decimal
from typing import Optional, Protocol

from src.core.ledger import SpendLedgerEntry
from src.core.models import Portfolio, Position, RuleSet, TradeOutcome
from src.core.risk_management.models import ExecutionRecord, PortfolioSnapshot


class RiskManagementRepository(Protocol):
    def get_rule_set(self, *, portfolio_id: str) -> Optional[RuleSet]: ...

    def save_rule_set(self, rule_set: RuleSet) -> None: ...

    def get_portfolio(self, *, portfolio_id: str) -> Optional[Portfolio]: ...

    def list_positions(self, *, portfolio_id: str) -> list[Position]: ...

    def get_total_balance(self, *, portfolio_id: str) -> Optional[Decimal]: ...

    def list_trade_outcomes(self, *, portfolio_id: str) -> list[TradeOutcome]: ...

    def replace_snapshot(self, snapshot: PortfolioSnapshot) -> None: ...

    def list_ledger_entries(self, *, portfolio_id: str) -> list[SpendLedgerEntry]: ...

    def record_execution(self, record: ExecutionRecord, entry: SpendLedgerEntry) -> None:
        """Persists the execution and its spend ledger entry together, or neither."""
        ...

    def list_executions(self, *, portfolio_id: str) -> list[ExecutionRecord]: ...
