from copy import deepcopy
from decimal import Decimal
from threading import Lock
from typing import Optional

from src.core.ledger import SpendLedgerEntry
from src.core.models import Portfolio, Position, RuleSet, TradeOutcome
from src.core.risk_management.models import ExecutionRecord, PortfolioSnapshot
from src.core.risk_management.repository import RiskManagementRepository


class InMemoryRiskManagementRepository(RiskManagementRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._rule_sets: dict[str, RuleSet] = {}
        self._portfolios: dict[str, Portfolio] = {}
        self._positions: dict[str, list[Position]] = {}
        self._total_balances: dict[str, Optional[Decimal]] = {}
        self._outcomes: dict[str, list[TradeOutcome]] = {}
        self._ledger: dict[str, list[SpendLedgerEntry]] = {}
        self._executions: dict[str, list[ExecutionRecord]] = {}

    def get_rule_set(self, *, portfolio_id: str) -> Optional[RuleSet]:
        with self._lock:
            rule_set = self._rule_sets.get(portfolio_id)
            return deepcopy(rule_set) if rule_set is not None else None

    def save_rule_set(self, rule_set: RuleSet) -> None:
        with self._lock:
            self._rule_sets[rule_set.portfolio_id] = deepcopy(rule_set)

    def get_portfolio(self, *, portfolio_id: str) -> Optional[Portfolio]:
        with self._lock:
            portfolio = self._portfolios.get(portfolio_id)
            return deepcopy(portfolio) if portfolio is not None else None

    def list_positions(self, *, portfolio_id: str) -> list[Position]:
        with self._lock:
            return deepcopy(self._positions.get(portfolio_id, []))

    def get_total_balance(self, *, portfolio_id: str) -> Optional[Decimal]:
        with self._lock:
            return self._total_balances.get(portfolio_id)

    def list_trade_outcomes(self, *, portfolio_id: str) -> list[TradeOutcome]:
        with self._lock:
            return deepcopy(self._outcomes.get(portfolio_id, []))

    def replace_snapshot(self, snapshot: PortfolioSnapshot) -> None:
        portfolio_id = snapshot.portfolio.portfolio_id
        with self._lock:
            self._portfolios[portfolio_id] = deepcopy(snapshot.portfolio)
            self._positions[portfolio_id] = deepcopy(snapshot.positions)
            self._total_balances[portfolio_id] = snapshot.total_balance
            self._outcomes[portfolio_id] = deepcopy(snapshot.trade_outcomes)

    def list_ledger_entries(self, *, portfolio_id: str) -> list[SpendLedgerEntry]:
        with self._lock:
            return deepcopy(self._ledger.get(portfolio_id, []))

    def record_execution(self, record: ExecutionRecord, entry: SpendLedgerEntry) -> None:
        with self._lock:
            self._executions.setdefault(record.portfolio_id, []).append(deepcopy(record))
            self._ledger.setdefault(entry.portfolio_id, []).append(deepcopy(entry))

    def list_executions(self, *, portfolio_id: str) -> list[ExecutionRecord]:
        with self._lock:
            rows = list(self._executions.get(portfolio_id, []))
        rows = sorted(rows, key=lambda row: (row.executed_at, row.execution_id), reverse=True)
        return [deepcopy(row) for row in rows]
