from src.core.errors import (
    OverrideReasonRequiredError,
    PortfolioNotFoundError,
    RiskManagementError,
    RiskValidationError,
)
from src.core.risk_management.models import ExecutionRecord, PortfolioSnapshot
from src.core.risk_management.repository import RiskManagementRepository
from src.core.risk_management.service import RiskManagementService

__all__ = [
    "ExecutionRecord",
    "OverrideReasonRequiredError",
    "PortfolioNotFoundError",
    "PortfolioSnapshot",
    "RiskManagementError",
    "RiskManagementRepository",
    "RiskManagementService",
    "RiskValidationError",
]
