from src.infrastructure.risk_management.in_memory import InMemoryRiskManagementRepository
from src.infrastructure.risk_management.sqlite import SqliteRiskManagementRepository

__all__ = ["InMemoryRiskManagementRepository", "SqliteRiskManagementRepository"]
