from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from src.core.errors import OverrideReasonRequiredError
from src.core.models import InvestmentChecklist

ExecutionDecision = Literal["EXECUTE", "EXECUTE_WITH_WARNINGS", "EXECUTE_WITH_OVERRIDE"]


class ExecutionGateDecision(BaseModel):
    decision: ExecutionDecision = Field(
        description="How execution was allowed to proceed.", examples=["EXECUTE"]
    )
    override_reason: Optional[str] = Field(
        default=None,
        description="Caller-supplied justification when blocking checks were bypassed.",
    )
    blocking_check_ids: List[str] = Field(
        default_factory=list,
        description="Blocking FAIL checks bypassed by the override.",
        examples=[["cash-availability"]],
    )
    warning_ids: List[str] = Field(
        default_factory=list, description="Checklist warnings presented to the caller."
    )


def blocking_check_ids(checklist: InvestmentChecklist) -> List[str]:
    return [c.id for c in checklist.checks if c.status == "FAIL" and c.is_blocking]


def evaluate_execution_gate(
    checklist: InvestmentChecklist, override_reason: Optional[str] = None
) -> ExecutionGateDecision:
    warning_ids = [warning.id for warning in checklist.warnings]

    if checklist.can_proceed:
        decision: ExecutionDecision = "EXECUTE_WITH_WARNINGS" if warning_ids else "EXECUTE"
        return ExecutionGateDecision(decision=decision, warning_ids=warning_ids)

    reason = (override_reason or "").strip()
    if not reason:
        raise OverrideReasonRequiredError("OVERRIDE_REASON_REQUIRED")

    return ExecutionGateDecision(
        decision="EXECUTE_WITH_OVERRIDE",
        override_reason=reason,
        blocking_check_ids=blocking_check_ids(checklist),
        warning_ids=warning_ids,
    )
