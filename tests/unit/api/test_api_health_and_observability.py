import json
import logging
import re

from fastapi.testclient import TestClient

from src.api.main import app
from src.api.observability import (
    JsonFormatter,
    correlation_id_var,
    portfolio_id_from_path,
    trace_id_from_traceparent,
)


def test_health_endpoints_return_expected_status_payloads():
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/health/live").json() == {"status": "live"}
        assert client.get("/health/ready").json() == {"status": "ready"}


def test_observability_headers_preserve_inbound_correlation_and_trace_id():
    with TestClient(app) as client:
        response = client.get(
            "/health",
            headers={
                "X-Correlation-Id": "corr-inbound-123",
                "X-Request-Id": "req-inbound-123",
                "traceparent": "00-1234567890abcdef1234567890abcdef-0000000000000001-01",
            },
        )

    assert response.status_code == 200
    assert response.headers["X-Correlation-Id"] == "corr-inbound-123"
    assert response.headers["X-Request-Id"] == "req-inbound-123"
    assert response.headers["X-Trace-Id"] == "1234567890abcdef1234567890abcdef"
    assert (
        response.headers["traceparent"] == "00-1234567890abcdef1234567890abcdef-0000000000000001-01"
    )


def test_observability_headers_generate_ids_when_missing():
    with TestClient(app) as client:
        response = client.get("/health")

    assert re.fullmatch(r"corr_[0-9a-f]{12}", response.headers["X-Correlation-Id"])
    assert re.fullmatch(r"req_[0-9a-f]{12}", response.headers["X-Request-Id"])
    assert re.fullmatch(r"[0-9a-f]{32}", response.headers["X-Trace-Id"])


def test_metrics_endpoint_available():
    with TestClient(app) as client:
        client.get("/health")
        response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text or "http_request_duration" in response.text


def test_trace_and_portfolio_ids_are_parsed_from_request():
    assert trace_id_from_traceparent("00-abc-01") is None
    assert trace_id_from_traceparent("") is None
    assert (
        trace_id_from_traceparent("00-1234567890abcdef1234567890abcdef-0000000000000001-01")
        == "1234567890abcdef1234567890abcdef"
    )
    assert portfolio_id_from_path("/portfolios/pf_1/risk-analysis") == "pf_1"
    assert portfolio_id_from_path("/health") is None


def test_json_formatter_merges_context_and_extra_fields(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "portfolio-guard-test")
    record = logging.LogRecord(
        name="src.core.risk_management.service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="execution.recorded",
        args=(),
        exc_info=None,
    )
    record.extra_fields = {"execution_id": "exe_1", "decision": "EXECUTE"}
    token = correlation_id_var.set("corr_test")
    try:
        payload = json.loads(JsonFormatter().format(record))
    finally:
        correlation_id_var.reset(token)

    assert payload["service"] == "portfolio-guard-test"
    assert payload["message"] == "execution.recorded"
    assert payload["correlation_id"] == "corr_test"
    assert payload["execution_id"] == "exe_1"
    assert "request_id" not in payload


def test_unhandled_errors_become_problem_details(monkeypatch):
    from src.api.routers import risk_management as risk_router

    class _ExplodingService:
        def analyze_portfolio_risk(self, *, portfolio_id):
            raise RuntimeError("boom")

    app.dependency_overrides[risk_router.get_risk_management_service] = _ExplodingService
    try:
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/portfolios/pf_1/risk-analysis")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["instance"] == "/portfolios/pf_1/risk-analysis"
