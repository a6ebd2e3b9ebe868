"""
FILE: tests/conftest.py
Shared fixtures for engine, service and API tests.
"""

from pathlib import Path

import pytest

from src.api.routers.risk_management import reset_risk_management_service_for_tests
from src.core.risk_management import RiskManagementService
from src.infrastructure.risk_management import InMemoryRiskManagementRepository
from tests.factories import fixed_clock


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if _has_marker(item, "unit") or _has_marker(item, "integration"):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture
def repository():
    return InMemoryRiskManagementRepository()


@pytest.fixture
def service(repository):
    return RiskManagementService(repository=repository, clock=fixed_clock())


@pytest.fixture(autouse=True)
def isolated_api_runtime(monkeypatch: pytest.MonkeyPatch):
    """Every test starts with a fresh in-memory API service."""
    monkeypatch.setenv("RISK_STORE_BACKEND", "IN_MEMORY")
    monkeypatch.delenv("RISK_EXECUTION_APIS_ENABLED", raising=False)
    monkeypatch.delenv("RISK_SNAPSHOT_APIS_ENABLED", raising=False)
    reset_risk_management_service_for_tests()
    yield
    reset_risk_management_service_for_tests()
