"""
FILE: src/core/models.py
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

RiskLevel = Literal["HIGH", "MEDIUM", "LOW"]
ChecklistStatus = Literal["PASS", "WARNING", "FAIL"]
ChecklistCategory = Literal["CASH", "POSITION", "PORTFOLIO", "RULES", "MARKET"]
WarningCategory = Literal["CONCENTRATION", "CASH", "POSITION", "MARKET", "RULE_VIOLATION"]
LossGuardMode = Literal["DRAWDOWN", "STREAK", "DRAWDOWN_OR_STREAK"]
StrategyCategory = Literal["LONG_TERM", "MID_TERM", "SHORT_TERM", "UNCATEGORIZED"]

_HUNDRED = Decimal("100")

_PERCENT_FIELDS = (
    "max_position_size",
    "min_cash_reserve",
    "max_sector_concentration",
    "stop_loss_percentage",
    "take_profit_percentage",
    "warning_threshold",
)


def _validate_percent(value: Optional[Decimal], *, field_name: str) -> Optional[Decimal]:
    if value is None:
        return value
    if value < Decimal("0") or value > _HUNDRED:
        raise ValueError(f"{field_name} must be between 0 and 100 inclusive")
    return value


def assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps without an offset are read as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class RuleSet(BaseModel):
    """Per-portfolio investment rules; defaults are a compatibility contract."""

    model_config = {
        "json_schema_extra": {
            "example": {
                "portfolio_id": "pf_1",
                "max_position_size": "20",
                "max_position_amount": "1000000",
                "min_cash_reserve": "10",
                "cooldown_period": 24,
            }
        }
    }

    portfolio_id: str = Field(description="Owning portfolio identifier.", examples=["pf_1"])
    max_position_size: Decimal = Field(
        default=Decimal("20"),
        description="Ceiling on a single symbol's share of portfolio value (percent).",
        examples=["20"],
    )
    max_position_amount: Decimal = Field(
        default=Decimal("1000000"),
        ge=0,
        description="Absolute ceiling on a single symbol's value.",
        examples=["1000000"],
    )
    max_daily_investment: Decimal = Field(
        default=Decimal("500000"),
        ge=0,
        description="Pacing ceiling on spend per calendar day.",
        examples=["500000"],
    )
    max_monthly_investment: Decimal = Field(
        default=Decimal("2000000"),
        ge=0,
        description="Pacing ceiling on spend per calendar month.",
        examples=["2000000"],
    )
    min_cash_reserve: Decimal = Field(
        default=Decimal("10"),
        description="Floor on cash-to-total-balance ratio (percent).",
        examples=["10"],
    )
    max_portfolio_risk: int = Field(
        default=6,
        ge=1,
        le=10,
        description="Ceiling on aggregate risk score (1-10).",
        examples=[6],
    )
    max_sector_concentration: Decimal = Field(
        default=Decimal("40"),
        description="Ceiling on a single sector's share of portfolio value (percent).",
        examples=["40"],
    )
    require_confirmation_above: Decimal = Field(
        default=Decimal("300000"),
        ge=0,
        description="Informational threshold above which callers ask for confirmation.",
        examples=["300000"],
    )
    cooldown_period: int = Field(
        default=24,
        ge=0,
        description="Minimum hours between trades on the same symbol.",
        examples=[24],
    )
    max_consecutive_losses: int = Field(
        default=3,
        ge=0,
        description="Consecutive realized losses after which buying is discouraged.",
        examples=[3],
    )
    auto_stop_loss: bool = Field(default=False, description="Advisory stop-loss flag.")
    stop_loss_percentage: Decimal = Field(
        default=Decimal("10"),
        description="Unrealized loss threshold (percent).",
        examples=["10"],
    )
    auto_take_profit: bool = Field(default=False, description="Advisory take-profit flag.")
    take_profit_percentage: Decimal = Field(
        default=Decimal("20"),
        description="Unrealized gain threshold (percent).",
        examples=["20"],
    )
    enable_warnings: bool = Field(
        default=True, description="Emit analyzer warnings in risk analysis."
    )
    warning_threshold: Decimal = Field(
        default=Decimal("15"),
        description="Warning sensitivity (percent).",
        examples=["15"],
    )
    loss_guard_mode: LossGuardMode = Field(
        default="DRAWDOWN",
        description=(
            "Loss guard semantics: current drawdown beyond stop-loss, realized loss streak, "
            "or either."
        ),
        examples=["DRAWDOWN"],
    )
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp.")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp.")

    @field_validator(*_PERCENT_FIELDS)
    @classmethod
    def validate_percentages(cls, v: Decimal, info) -> Decimal:
        return _validate_percent(v, field_name=info.field_name)

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return assume_utc(v)


class RuleSetUpdate(BaseModel):
    """Partial rule-set edit; unset fields keep their current value."""

    max_position_size: Optional[Decimal] = None
    max_position_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_daily_investment: Optional[Decimal] = Field(default=None, ge=0)
    max_monthly_investment: Optional[Decimal] = Field(default=None, ge=0)
    min_cash_reserve: Optional[Decimal] = None
    max_portfolio_risk: Optional[int] = Field(default=None, ge=1, le=10)
    max_sector_concentration: Optional[Decimal] = None
    require_confirmation_above: Optional[Decimal] = Field(default=None, ge=0)
    cooldown_period: Optional[int] = Field(default=None, ge=0)
    max_consecutive_losses: Optional[int] = Field(default=None, ge=0)
    auto_stop_loss: Optional[bool] = None
    stop_loss_percentage: Optional[Decimal] = None
    auto_take_profit: Optional[bool] = None
    take_profit_percentage: Optional[Decimal] = None
    enable_warnings: Optional[bool] = None
    warning_threshold: Optional[Decimal] = None
    loss_guard_mode: Optional[LossGuardMode] = None

    @field_validator(*_PERCENT_FIELDS)
    @classmethod
    def validate_percentages(cls, v: Optional[Decimal], info) -> Optional[Decimal]:
        return _validate_percent(v, field_name=info.field_name)

    def apply_to(self, rule_set: RuleSet, *, now: datetime) -> RuleSet:
        changes = self.model_dump(exclude_unset=True, exclude_none=True)
        changes["updated_at"] = now
        return rule_set.model_copy(update=changes)


class Portfolio(BaseModel):
    portfolio_id: str = Field(description="Portfolio identifier.", examples=["pf_1"])
    name: str = Field(description="Display name.", examples=["Core growth"])
    currency: Literal["KRW", "USD"] = Field(default="KRW", description="Portfolio currency.")
    account_id: str = Field(description="Owning brokerage account id.", examples=["acc_1"])


class Position(BaseModel):
    position_id: str = Field(description="Position identifier.", examples=["pos_1"])
    portfolio_id: str = Field(description="Owning portfolio identifier.", examples=["pf_1"])
    symbol: str = Field(description="Ticker symbol.", examples=["AAPL"])
    name: str = Field(default="", description="Instrument display name.", examples=["Apple"])
    quantity: Decimal = Field(ge=0, description="Held quantity.", examples=["10"])
    avg_price: Decimal = Field(ge=0, description="Average purchase price.", examples=["150"])
    current_price: Decimal = Field(ge=0, description="Latest price.", examples=["180"])
    trade_date: datetime = Field(
        description="Timestamp of the most recent trade on the position.",
        examples=["2026-02-20T12:00:00+00:00"],
    )
    strategy_category: StrategyCategory = Field(default="UNCATEGORIZED")
    strategy_tags: List[str] = Field(default_factory=list)

    @field_validator("trade_date")
    @classmethod
    def validate_trade_date(cls, v: datetime) -> datetime:
        return assume_utc(v)

    @property
    def value(self) -> Decimal:
        return self.quantity * self.current_price

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.avg_price

    @property
    def unrealized_return_pct(self) -> Decimal:
        if self.avg_price == 0:
            return Decimal("0")
        return (self.current_price - self.avg_price) / self.avg_price * _HUNDRED


class CashBalance(BaseModel):
    total_balance: Decimal = Field(description="Total account balance.", examples=["1000000"])
    cash_balance: Decimal = Field(description="Uninvested cash.", examples=["400000"])
    invested_amount: Decimal = Field(description="Amount invested.", examples=["600000"])
    utilization_rate: Decimal = Field(
        description="invested_amount / total_balance * 100.", examples=["60"]
    )


class TradeOutcome(BaseModel):
    portfolio_id: str = Field(description="Owning portfolio identifier.", examples=["pf_1"])
    symbol: str = Field(description="Ticker symbol.", examples=["AAPL"])
    realized_pnl: Decimal = Field(description="Realized profit (negative is a loss).")
    closed_at: datetime = Field(description="Close timestamp.")

    @field_validator("closed_at")
    @classmethod
    def validate_closed_at(cls, v: datetime) -> datetime:
        return assume_utc(v)


class TopPosition(BaseModel):
    symbol: str
    name: str = ""
    percentage: Decimal = Field(description="Share of total position value (percent).")
    risk: RiskLevel


class SectorExposure(BaseModel):
    sector: str
    percentage: Decimal
    risk: RiskLevel


class ConcentrationRisk(BaseModel):
    top_positions: List[TopPosition] = Field(
        default_factory=list, description="Top five positions by share, descending."
    )
    sector_concentration: List[SectorExposure] = Field(default_factory=list)
    diversification_score: int = Field(ge=1, le=10)


class CashRisk(BaseModel):
    current_cash_ratio: Decimal
    recommended_cash_ratio: Decimal
    utilization_rate: Decimal
    risk: RiskLevel
    days_until_cash_out: int = Field(ge=0)


class PositionRisk(BaseModel):
    position_id: str
    symbol: str
    name: str = ""
    current_return: Decimal
    risk_score: int = Field(ge=1, le=10)
    consecutive_losses: int = Field(default=0, ge=0)
    last_trade_date: datetime
    violates_rules: List[str] = Field(default_factory=list)


class RiskWarning(BaseModel):
    id: str = Field(description="Stable warning identifier.", examples=["cash-risk"])
    type: RiskLevel = Field(description="Warning severity.")
    category: WarningCategory
    title: str
    message: str
    recommendation: str = ""
    can_proceed: bool = Field(description="Whether the purchase may proceed despite it.")


class RiskAnalysis(BaseModel):
    portfolio_id: str
    risk_score: int = Field(ge=1, le=10)
    warnings: List[RiskWarning] = Field(
        default_factory=list, description="Warnings ordered by severity, most severe first."
    )
    recommendations: List[str] = Field(default_factory=list)
    concentration_risk: ConcentrationRisk
    cash_risk: CashRisk
    position_risks: List[PositionRisk] = Field(default_factory=list)
    analysis_date: datetime


class ChecklistItem(BaseModel):
    id: str = Field(description="Stable check identifier.", examples=["cash-availability"])
    category: ChecklistCategory
    title: str
    status: ChecklistStatus
    message: str
    recommendation: Optional[str] = None
    is_blocking: bool = False

    @model_validator(mode="after")
    def validate_blocking_status(self) -> "ChecklistItem":
        if self.is_blocking and self.status != "FAIL":
            raise ValueError("only FAIL checklist items can be blocking")
        return self


class InvestmentChecklist(BaseModel):
    """Decision artifact for one prospective purchase; never persisted on its own."""

    portfolio_id: str
    symbol: str
    planned_amount: Decimal
    checks: List[ChecklistItem] = Field(default_factory=list)
    overall_risk: RiskLevel
    can_proceed: bool
    warnings: List[RiskWarning] = Field(default_factory=list)
    evaluated_at: datetime
