import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from src.core.checklist import ChecklistEngine
from src.core.common.canonical import hash_model
from src.core.errors import PortfolioNotFoundError, RiskValidationError
from src.core.gate import evaluate_execution_gate
from src.core.ledger import SpendLedgerEntry, windowed_spend
from src.core.models import (
    CashBalance,
    InvestmentChecklist,
    Portfolio,
    Position,
    RiskAnalysis,
    RuleSet,
    RuleSetUpdate,
    TradeOutcome,
)
from src.core.risk import analyze_portfolio_risk, calculate_cash_balance
from src.core.risk.sectors import SectorClassifier
from src.core.risk_management.models import ExecutionRecord, PortfolioSnapshot
from src.core.risk_management.repository import RiskManagementRepository

logger = logging.getLogger(__name__)


@dataclass
class _EvaluationInputs:
    portfolio: Portfolio
    rule_set: RuleSet
    positions: list[Position]
    cash_balance: Optional[CashBalance]
    outcomes_by_symbol: dict[str, list[TradeOutcome]] = field(default_factory=dict)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RiskManagementService:
    def __init__(
        self,
        *,
        repository: RiskManagementRepository,
        clock: Optional[Callable[[], datetime]] = None,
        sector_classifier: Optional[SectorClassifier] = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or _utc_now
        self._sector_classifier = sector_classifier

    def load_snapshot(self, snapshot: PortfolioSnapshot) -> None:
        portfolio_id = snapshot.portfolio.portfolio_id
        foreign = [
            item.symbol
            for item in [*snapshot.positions, *snapshot.trade_outcomes]
            if item.portfolio_id != portfolio_id
        ]
        if foreign:
            raise RiskValidationError("SNAPSHOT_PORTFOLIO_MISMATCH")
        self._repository.replace_snapshot(snapshot)

    def get_or_create_rule_set(self, *, portfolio_id: str) -> RuleSet:
        rule_set = self._repository.get_rule_set(portfolio_id=portfolio_id)
        if rule_set is not None:
            return rule_set
        now = self._clock()
        rule_set = RuleSet(portfolio_id=portfolio_id, created_at=now, updated_at=now)
        self._repository.save_rule_set(rule_set)
        logger.info(
            "rule_set.created",
            extra={"extra_fields": {"portfolio_id": portfolio_id}},
        )
        return rule_set

    def update_rule_set(self, *, portfolio_id: str, update: RuleSetUpdate) -> RuleSet:
        current = self.get_or_create_rule_set(portfolio_id=portfolio_id)
        updated = update.apply_to(current, now=self._clock())
        self._repository.save_rule_set(updated)
        return updated

    def analyze_portfolio_risk(self, *, portfolio_id: str) -> RiskAnalysis:
        inputs = self._load_inputs(portfolio_id)
        analysis = self._analyze(inputs, now=self._clock())
        logger.info(
            "risk.analysis.completed",
            extra={
                "extra_fields": {
                    "portfolio_id": portfolio_id,
                    "risk_score": analysis.risk_score,
                    "warning_count": len(analysis.warnings),
                }
            },
        )
        return analysis

    def create_investment_checklist(
        self, *, portfolio_id: str, symbol: str, planned_amount: Decimal
    ) -> InvestmentChecklist:
        if planned_amount <= 0:
            raise RiskValidationError("PLANNED_AMOUNT_MUST_BE_POSITIVE")
        inputs = self._load_inputs(portfolio_id)
        now = self._clock()
        checklist = ChecklistEngine.evaluate(
            portfolio_id=portfolio_id,
            symbol=symbol,
            planned_amount=planned_amount,
            positions=inputs.positions,
            cash_balance=inputs.cash_balance,
            rule_set=inputs.rule_set,
            risk_analysis=self._analyze(inputs, now=now),
            spend=windowed_spend(
                self._repository.list_ledger_entries(portfolio_id=portfolio_id), now
            ),
            now=now,
            outcomes=inputs.outcomes_by_symbol.get(symbol, []),
        )
        logger.info(
            "risk.checklist.evaluated",
            extra={
                "extra_fields": {
                    "portfolio_id": portfolio_id,
                    "symbol": symbol,
                    "overall_risk": checklist.overall_risk,
                    "can_proceed": checklist.can_proceed,
                }
            },
        )
        return checklist

    def execute_plan_entry(
        self,
        *,
        portfolio_id: str,
        symbol: str,
        planned_amount: Decimal,
        actor_id: str,
        override_reason: Optional[str] = None,
    ) -> ExecutionRecord:
        """
        Re-evaluates the checklist at execution time, applies the gate and records the
        audit pairing. Raises OverrideReasonRequiredError when blocked without a reason.
        """
        checklist = self.create_investment_checklist(
            portfolio_id=portfolio_id, symbol=symbol, planned_amount=planned_amount
        )
        decision = evaluate_execution_gate(checklist, override_reason)

        record = ExecutionRecord(
            execution_id=f"exe_{uuid.uuid4().hex[:12]}",
            portfolio_id=portfolio_id,
            symbol=symbol,
            planned_amount=planned_amount,
            actor_id=actor_id,
            decision=decision.decision,
            override_reason=decision.override_reason,
            blocking_check_ids=decision.blocking_check_ids,
            checklist=checklist,
            checklist_hash=hash_model(checklist),
            executed_at=checklist.evaluated_at,
        )
        self._repository.record_execution(
            record,
            SpendLedgerEntry(
                portfolio_id=portfolio_id,
                symbol=symbol,
                amount=planned_amount,
                executed_at=record.executed_at,
                execution_id=record.execution_id,
            ),
        )

        if decision.decision == "EXECUTE_WITH_OVERRIDE":
            logger.warning(
                "execution.override.accepted",
                extra={
                    "extra_fields": {
                        "execution_id": record.execution_id,
                        "portfolio_id": portfolio_id,
                        "symbol": symbol,
                        "actor_id": actor_id,
                        "blocking_check_ids": decision.blocking_check_ids,
                    }
                },
            )
        logger.info(
            "execution.recorded",
            extra={
                "extra_fields": {
                    "execution_id": record.execution_id,
                    "portfolio_id": portfolio_id,
                    "decision": record.decision,
                }
            },
        )
        return record

    def list_executions(self, *, portfolio_id: str) -> list[ExecutionRecord]:
        return self._repository.list_executions(portfolio_id=portfolio_id)

    def _load_inputs(self, portfolio_id: str) -> _EvaluationInputs:
        portfolio = self._repository.get_portfolio(portfolio_id=portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError("PORTFOLIO_NOT_FOUND")
        positions = self._repository.list_positions(portfolio_id=portfolio_id)
        outcomes_by_symbol: dict[str, list[TradeOutcome]] = defaultdict(list)
        for outcome in self._repository.list_trade_outcomes(portfolio_id=portfolio_id):
            outcomes_by_symbol[outcome.symbol].append(outcome)
        return _EvaluationInputs(
            portfolio=portfolio,
            rule_set=self.get_or_create_rule_set(portfolio_id=portfolio_id),
            positions=positions,
            cash_balance=calculate_cash_balance(
                self._repository.get_total_balance(portfolio_id=portfolio_id), positions
            ),
            outcomes_by_symbol=dict(outcomes_by_symbol),
        )

    def _analyze(self, inputs: _EvaluationInputs, *, now: datetime) -> RiskAnalysis:
        return analyze_portfolio_risk(
            portfolio_id=inputs.portfolio.portfolio_id,
            positions=inputs.positions,
            rule_set=inputs.rule_set,
            cash_balance=inputs.cash_balance,
            analysis_date=now,
            sector_classifier=self._sector_classifier,
            outcomes_by_symbol=inputs.outcomes_by_symbol,
        )
