"""
FILE: src/api/main.py
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.routers.risk_management import router as risk_management_router

app = FastAPI(
    title="Portfolio Guard API",
    version="0.1.0",
    description=(
        "Pre-trade risk and rule evaluation for personal investment portfolios.\n\n"
        "Rule violations are returned in the response body as checklist items with "
        "`PASS`, `WARNING`, or `FAIL` status."
    ),
    openapi_tags=[
        {
            "name": "Portfolio Risk",
            "description": "Rule sets, risk analysis, pre-trade checklists, and executions.",
        },
        {
            "name": "Health",
            "description": "Liveness and readiness probes.",
        },
    ],
)

setup_observability(app)
logger = logging.getLogger(__name__)

app.include_router(risk_management_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Health"], summary="Service Health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live", tags=["Health"], summary="Liveness Probe")
def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready", tags=["Health"], summary="Readiness Probe")
def health_ready() -> dict[str, str]:
    return {"status": "ready"}
