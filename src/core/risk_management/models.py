from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from src.core.gate import ExecutionDecision
from src.core.models import InvestmentChecklist, Portfolio, Position, TradeOutcome


class ExecutionRecord(BaseModel):
    """Audit pairing of the checklist snapshot with the decision that let a buy proceed."""

    execution_id: str = Field(description="Execution identifier.", examples=["exe_abc123"])
    portfolio_id: str = Field(description="Portfolio identifier.", examples=["pf_1"])
    symbol: str = Field(description="Purchased symbol.", examples=["AAPL"])
    planned_amount: Decimal = Field(description="Executed purchase amount.", examples=["50000"])
    actor_id: str = Field(description="Actor who requested execution.", examples=["user_1"])
    decision: ExecutionDecision = Field(description="Gate decision applied.")
    override_reason: Optional[str] = Field(
        default=None, description="Justification for bypassing blocking checks."
    )
    blocking_check_ids: List[str] = Field(default_factory=list)
    checklist: InvestmentChecklist = Field(description="Checklist evaluated at execution time.")
    checklist_hash: str = Field(
        description="Canonical hash of the checklist snapshot.", examples=["sha256:abc123"]
    )
    executed_at: datetime = Field(description="Execution timestamp (UTC).")


class PortfolioSnapshot(BaseModel):
    """Collaborator data for one portfolio, as supplied by the surrounding application."""

    model_config = {
        "json_schema_extra": {
            "example": {
                "portfolio": {
                    "portfolio_id": "pf_1",
                    "name": "Core growth",
                    "currency": "KRW",
                    "account_id": "acc_1",
                },
                "total_balance": "1000000",
                "positions": [
                    {
                        "position_id": "pos_1",
                        "portfolio_id": "pf_1",
                        "symbol": "AAPL",
                        "quantity": "10",
                        "avg_price": "150",
                        "current_price": "180",
                        "trade_date": "2026-02-20T12:00:00+00:00",
                    }
                ],
                "trade_outcomes": [],
            }
        }
    }

    portfolio: Portfolio = Field(description="Portfolio record.")
    total_balance: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Account total balance (cash plus invested); null when unknown.",
    )
    positions: List[Position] = Field(default_factory=list, description="Open positions.")
    trade_outcomes: List[TradeOutcome] = Field(
        default_factory=list, description="Closed trade results used for loss streaks."
    )
