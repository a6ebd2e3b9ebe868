import logging
import os

from fastapi import HTTPException, status

from src.core.risk_management.repository import RiskManagementRepository
from src.infrastructure.risk_management import (
    InMemoryRiskManagementRepository,
    SqliteRiskManagementRepository,
)

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = ".data/portfolio_guard.db"


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def assert_feature_enabled(*, name: str, default: bool, detail: str) -> None:
    if not env_flag(name, default):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def risk_store_backend_name() -> str:
    backend = os.getenv("RISK_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend in {"SQL", "SQLITE"}:
        return "SQLITE"
    if backend != "IN_MEMORY":
        logger.warning(
            "risk.store.backend.unknown",
            extra={"extra_fields": {"requested_backend": backend, "backend": "IN_MEMORY"}},
        )
    return "IN_MEMORY"


def risk_sqlite_path() -> str:
    return os.getenv("RISK_SQLITE_PATH", DEFAULT_SQLITE_PATH).strip() or DEFAULT_SQLITE_PATH


def build_repository() -> RiskManagementRepository:
    if risk_store_backend_name() == "SQLITE":
        return SqliteRiskManagementRepository(database_path=risk_sqlite_path())
    return InMemoryRiskManagementRepository()
