from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ChecklistRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"symbol": "AAPL", "planned_amount": "50000"}}}

    symbol: str = Field(min_length=1, description="Symbol to be purchased.", examples=["AAPL"])
    planned_amount: Decimal = Field(
        gt=0, description="Intended purchase amount in portfolio currency.", examples=["50000"]
    )

    @field_validator("symbol")
    @classmethod
    def _strip_symbol(cls, value: str) -> str:
        return value.strip()


class ExecutionRequest(ChecklistRequest):
    model_config = {
        "json_schema_extra": {
            "example": {
                "symbol": "AAPL",
                "planned_amount": "50000",
                "actor_id": "user_1",
                "override_reason": None,
            }
        }
    }

    actor_id: str = Field(
        min_length=1, description="Actor requesting the execution.", examples=["user_1"]
    )
    override_reason: Optional[str] = Field(
        default=None,
        description="Required justification when blocking checks fail.",
        examples=["Rebalancing approved by investment committee."],
    )
