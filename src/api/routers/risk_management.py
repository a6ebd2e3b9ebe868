from typing import Annotated, List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status

from src.api.request_models import ChecklistRequest, ExecutionRequest
from src.api.routers.risk_management_config import assert_feature_enabled, build_repository
from src.core.models import InvestmentChecklist, RiskAnalysis, RuleSet, RuleSetUpdate
from src.core.risk_management import (
    ExecutionRecord,
    OverrideReasonRequiredError,
    PortfolioNotFoundError,
    PortfolioSnapshot,
    RiskManagementService,
    RiskValidationError,
)

router = APIRouter(tags=["Portfolio Risk"])

HTTP_422_UNPROCESSABLE = getattr(
    status, "HTTP_422_UNPROCESSABLE_CONTENT", status.HTTP_422_UNPROCESSABLE_ENTITY
)

_SERVICE: Optional[RiskManagementService] = None

PortfolioIdPath = Annotated[
    str,
    Path(description="Portfolio identifier.", examples=["pf_1"]),
]


def get_risk_management_service() -> RiskManagementService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = RiskManagementService(repository=build_repository())
    return _SERVICE


def reset_risk_management_service_for_tests() -> None:
    global _SERVICE
    _SERVICE = None


def raise_risk_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, PortfolioNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, OverrideReasonRequiredError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, RiskValidationError):
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=str(exc)) from exc
    raise exc


def _assert_snapshot_apis_enabled() -> None:
    assert_feature_enabled(
        name="RISK_SNAPSHOT_APIS_ENABLED",
        default=True,
        detail="RISK_SNAPSHOT_APIS_DISABLED",
    )


def _assert_execution_apis_enabled() -> None:
    assert_feature_enabled(
        name="RISK_EXECUTION_APIS_ENABLED",
        default=True,
        detail="RISK_EXECUTION_APIS_DISABLED",
    )


ServiceDependency = Annotated[RiskManagementService, Depends(get_risk_management_service)]


@router.put(
    "/portfolios/{portfolio_id}/snapshot",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Load Portfolio Snapshot",
    description=(
        "Replaces the portfolio record, open positions, account total balance and closed "
        "trade outcomes the engine evaluates against."
    ),
)
def put_portfolio_snapshot(
    portfolio_id: PortfolioIdPath,
    payload: PortfolioSnapshot,
    service: ServiceDependency,
) -> None:
    _assert_snapshot_apis_enabled()
    if payload.portfolio.portfolio_id != portfolio_id:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail="PORTFOLIO_ID_MISMATCH")
    try:
        service.load_snapshot(payload)
    except RiskValidationError as exc:
        raise_risk_http_exception(exc)


@router.get(
    "/portfolios/{portfolio_id}/rules",
    response_model=RuleSet,
    summary="Get Rule Set",
    description="Returns the portfolio's rule set, creating it with defaults on first access.",
)
def get_rule_set(portfolio_id: PortfolioIdPath, service: ServiceDependency) -> RuleSet:
    return service.get_or_create_rule_set(portfolio_id=portfolio_id)


@router.patch(
    "/portfolios/{portfolio_id}/rules",
    response_model=RuleSet,
    summary="Update Rule Set",
    description="Partially updates rule thresholds; omitted fields keep their current values.",
)
def patch_rule_set(
    portfolio_id: PortfolioIdPath,
    payload: RuleSetUpdate,
    service: ServiceDependency,
) -> RuleSet:
    return service.update_rule_set(portfolio_id=portfolio_id, update=payload)


@router.get(
    "/portfolios/{portfolio_id}/risk-analysis",
    response_model=RiskAnalysis,
    summary="Analyze Portfolio Risk",
    description="Runs concentration, cash and per-position analysis and aggregates a 1-10 score.",
)
def get_risk_analysis(portfolio_id: PortfolioIdPath, service: ServiceDependency) -> RiskAnalysis:
    try:
        return service.analyze_portfolio_risk(portfolio_id=portfolio_id)
    except PortfolioNotFoundError as exc:
        raise_risk_http_exception(exc)


@router.post(
    "/portfolios/{portfolio_id}/checklists",
    response_model=InvestmentChecklist,
    summary="Evaluate Pre-Trade Checklist",
    description=(
        "Evaluates a planned purchase against the rule set. Failed checks are reported in the "
        "body; they are not HTTP errors."
    ),
)
def post_checklist(
    portfolio_id: PortfolioIdPath,
    payload: ChecklistRequest,
    service: ServiceDependency,
) -> InvestmentChecklist:
    try:
        return service.create_investment_checklist(
            portfolio_id=portfolio_id,
            symbol=payload.symbol,
            planned_amount=payload.planned_amount,
        )
    except (PortfolioNotFoundError, RiskValidationError) as exc:
        raise_risk_http_exception(exc)


@router.post(
    "/portfolios/{portfolio_id}/executions",
    response_model=ExecutionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Execute Plan Entry",
    description=(
        "Re-evaluates the checklist and records the execution. Blocked checklists require an "
        "override reason, otherwise 409 OVERRIDE_REASON_REQUIRED is returned."
    ),
)
def post_execution(
    portfolio_id: PortfolioIdPath,
    payload: ExecutionRequest,
    service: ServiceDependency,
) -> ExecutionRecord:
    _assert_execution_apis_enabled()
    try:
        return service.execute_plan_entry(
            portfolio_id=portfolio_id,
            symbol=payload.symbol,
            planned_amount=payload.planned_amount,
            actor_id=payload.actor_id,
            override_reason=payload.override_reason,
        )
    except (PortfolioNotFoundError, RiskValidationError, OverrideReasonRequiredError) as exc:
        raise_risk_http_exception(exc)


@router.get(
    "/portfolios/{portfolio_id}/executions",
    response_model=List[ExecutionRecord],
    summary="List Executions",
    description="Returns recorded executions for the portfolio, newest first.",
)
def list_executions(
    portfolio_id: PortfolioIdPath, service: ServiceDependency
) -> List[ExecutionRecord]:
    _assert_execution_apis_enabled()
    return service.list_executions(portfolio_id=portfolio_id)
