from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field, field_validator

from src.core.models import assume_utc


class SpendLedgerEntry(BaseModel):
    portfolio_id: str = Field(description="Portfolio identifier.", examples=["pf_1"])
    symbol: str = Field(description="Purchased symbol.", examples=["AAPL"])
    amount: Decimal = Field(ge=0, description="Executed purchase amount.", examples=["50000"])
    executed_at: datetime = Field(description="Execution timestamp (UTC).")
    execution_id: str = Field(description="Execution record id.", examples=["exe_abc123"])

    @field_validator("executed_at")
    @classmethod
    def validate_executed_at(cls, v: datetime) -> datetime:
        return assume_utc(v)


class SpendWindow(BaseModel):
    daily: Decimal = Field(default=Decimal("0"), description="Spend in the current UTC day.")
    monthly: Decimal = Field(
        default=Decimal("0"), description="Spend in the current UTC calendar month."
    )


def windowed_spend(entries: Iterable[SpendLedgerEntry], now: datetime) -> SpendWindow:
    now_utc = now.astimezone(timezone.utc)
    daily = Decimal("0")
    monthly = Decimal("0")
    for entry in entries:
        executed = entry.executed_at.astimezone(timezone.utc)
        if executed > now_utc:
            continue
        if (executed.year, executed.month) != (now_utc.year, now_utc.month):
            continue
        monthly += entry.amount
        if executed.date() == now_utc.date():
            daily += entry.amount
    return SpendWindow(daily=daily, monthly=monthly)
