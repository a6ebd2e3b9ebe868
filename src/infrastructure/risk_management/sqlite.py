import json
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from threading import Lock
from typing import Optional

from src.core.ledger import SpendLedgerEntry
from src.core.models import Portfolio, Position, RuleSet, TradeOutcome
from src.core.risk_management.models import ExecutionRecord, PortfolioSnapshot
from src.core.risk_management.repository import RiskManagementRepository


class SqliteRiskManagementRepository(RiskManagementRepository):
    def __init__(self, *, database_path: str) -> None:
        self._database_path = database_path
        self._lock = Lock()
        self._init_db()

    def get_rule_set(self, *, portfolio_id: str) -> Optional[RuleSet]:
        query = "SELECT rule_set_json FROM risk_rule_sets WHERE portfolio_id = ?"
        with closing(self._connect()) as connection:
            row = connection.execute(query, (portfolio_id,)).fetchone()
        if row is None:
            return None
        return RuleSet.model_validate(json.loads(row["rule_set_json"]))

    def save_rule_set(self, rule_set: RuleSet) -> None:
        query = """
            INSERT INTO risk_rule_sets (
                portfolio_id,
                updated_at,
                rule_set_json
            ) VALUES (?, ?, ?)
            ON CONFLICT(portfolio_id) DO UPDATE SET
                updated_at=excluded.updated_at,
                rule_set_json=excluded.rule_set_json
        """
        with self._lock, closing(self._connect()) as connection:
            connection.execute(
                query,
                (
                    rule_set.portfolio_id,
                    _rule_set_timestamp(rule_set).isoformat(),
                    _json_dump(rule_set.model_dump(mode="json")),
                ),
            )
            connection.commit()

    def get_portfolio(self, *, portfolio_id: str) -> Optional[Portfolio]:
        row = self._snapshot_row(portfolio_id)
        if row is None:
            return None
        return Portfolio.model_validate(json.loads(row["portfolio_json"]))

    def list_positions(self, *, portfolio_id: str) -> list[Position]:
        row = self._snapshot_row(portfolio_id)
        if row is None:
            return []
        return [Position.model_validate(item) for item in json.loads(row["positions_json"])]

    def get_total_balance(self, *, portfolio_id: str) -> Optional[Decimal]:
        row = self._snapshot_row(portfolio_id)
        if row is None or row["total_balance"] is None:
            return None
        return Decimal(row["total_balance"])

    def list_trade_outcomes(self, *, portfolio_id: str) -> list[TradeOutcome]:
        row = self._snapshot_row(portfolio_id)
        if row is None:
            return []
        return [TradeOutcome.model_validate(item) for item in json.loads(row["outcomes_json"])]

    def replace_snapshot(self, snapshot: PortfolioSnapshot) -> None:
        query = """
            INSERT INTO risk_portfolio_snapshots (
                portfolio_id,
                portfolio_json,
                total_balance,
                positions_json,
                outcomes_json
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(portfolio_id) DO UPDATE SET
                portfolio_json=excluded.portfolio_json,
                total_balance=excluded.total_balance,
                positions_json=excluded.positions_json,
                outcomes_json=excluded.outcomes_json
        """
        payload = snapshot.model_dump(mode="json")
        with self._lock, closing(self._connect()) as connection:
            connection.execute(
                query,
                (
                    snapshot.portfolio.portfolio_id,
                    _json_dump(payload["portfolio"]),
                    _optional_decimal_text(snapshot.total_balance),
                    _json_dump(payload["positions"]),
                    _json_dump(payload["trade_outcomes"]),
                ),
            )
            connection.commit()

    def list_ledger_entries(self, *, portfolio_id: str) -> list[SpendLedgerEntry]:
        query = """
            SELECT
                portfolio_id,
                symbol,
                amount,
                executed_at,
                execution_id
            FROM risk_spend_ledger
            WHERE portfolio_id = ?
            ORDER BY entry_id ASC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (portfolio_id,)).fetchall()
        return [
            SpendLedgerEntry(
                portfolio_id=row["portfolio_id"],
                symbol=row["symbol"],
                amount=Decimal(row["amount"]),
                executed_at=datetime.fromisoformat(row["executed_at"]),
                execution_id=row["execution_id"],
            )
            for row in rows
        ]

    def record_execution(self, record: ExecutionRecord, entry: SpendLedgerEntry) -> None:
        # single transaction: an uncommitted write is rolled back when the connection closes
        with self._lock, closing(self._connect()) as connection:
            self._upsert_execution(connection, record)
            self._insert_ledger_entry(connection, entry)
            connection.commit()

    def list_executions(self, *, portfolio_id: str) -> list[ExecutionRecord]:
        query = """
            SELECT record_json
            FROM risk_executions
            WHERE portfolio_id = ?
            ORDER BY executed_at DESC, execution_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (portfolio_id,)).fetchall()
        return [ExecutionRecord.model_validate(json.loads(row["record_json"])) for row in rows]

    def _insert_ledger_entry(
        self, connection: sqlite3.Connection, entry: SpendLedgerEntry
    ) -> None:
        query = """
            INSERT INTO risk_spend_ledger (
                portfolio_id,
                symbol,
                amount,
                executed_at,
                execution_id
            ) VALUES (?, ?, ?, ?, ?)
        """
        connection.execute(
            query,
            (
                entry.portfolio_id,
                entry.symbol,
                str(entry.amount),
                entry.executed_at.isoformat(),
                entry.execution_id,
            ),
        )

    def _upsert_execution(self, connection: sqlite3.Connection, record: ExecutionRecord) -> None:
        query = """
            INSERT INTO risk_executions (
                execution_id,
                portfolio_id,
                decision,
                executed_at,
                record_json
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(execution_id) DO UPDATE SET
                portfolio_id=excluded.portfolio_id,
                decision=excluded.decision,
                executed_at=excluded.executed_at,
                record_json=excluded.record_json
        """
        connection.execute(
            query,
            (
                record.execution_id,
                record.portfolio_id,
                record.decision,
                record.executed_at.isoformat(),
                _json_dump(record.model_dump(mode="json")),
            ),
        )

    def _snapshot_row(self, portfolio_id: str) -> Optional[sqlite3.Row]:
        query = """
            SELECT
                portfolio_json,
                total_balance,
                positions_json,
                outcomes_json
            FROM risk_portfolio_snapshots
            WHERE portfolio_id = ?
        """
        with closing(self._connect()) as connection:
            return connection.execute(query, (portfolio_id,)).fetchone()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path)
        connection.row_factory = sqlite3.Row
        return connection

    def _init_db(self) -> None:
        Path(self._database_path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS risk_rule_sets (
                    portfolio_id TEXT PRIMARY KEY,
                    updated_at TEXT NOT NULL,
                    rule_set_json TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS risk_portfolio_snapshots (
                    portfolio_id TEXT PRIMARY KEY,
                    portfolio_json TEXT NOT NULL,
                    total_balance TEXT NULL,
                    positions_json TEXT NOT NULL,
                    outcomes_json TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS risk_spend_ledger (
                    entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    portfolio_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    executed_at TEXT NOT NULL,
                    execution_id TEXT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_risk_spend_ledger_portfolio
                    ON risk_spend_ledger (portfolio_id, executed_at);

                CREATE TABLE IF NOT EXISTS risk_executions (
                    execution_id TEXT PRIMARY KEY,
                    portfolio_id TEXT NOT NULL,
                    decision TEXT NOT NULL,
                    executed_at TEXT NOT NULL,
                    record_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_risk_executions_portfolio
                    ON risk_executions (portfolio_id, executed_at);
                """
            )
            connection.commit()


def _json_dump(value) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def _optional_decimal_text(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _rule_set_timestamp(rule_set: RuleSet) -> datetime:
    return rule_set.updated_at or rule_set.created_at or datetime.now(timezone.utc)
