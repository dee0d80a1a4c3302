from __future__ import annotations

import argparse
from typing import Annotated

import uvicorn
from fastapi import FastAPI, status
from pydantic import BaseModel, Field

from .api import build_api
from .models import EvaluationReport, QuotaObserverConfig, RegionReport, SpaceQuota, TableUsage

ReportsPayload = Annotated[list[RegionReport], Field(min_length=1)]


class ReportsRequest(BaseModel):
    """Payload for ingesting region usage reports."""

    reports: ReportsPayload


class ReportsResponse(BaseModel):
    """Response returned after successful ingestion."""

    ingested: int


def create_app(config: QuotaObserverConfig | None = None) -> FastAPI:
    """Construct a FastAPI app backed by QuotaObserverAPI."""

    api = build_api(config)
    app = FastAPI(title="Space Quota Observer", version="0.1.0")
    app.state.api = api

    @app.get("/healthz", status_code=status.HTTP_200_OK)
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/reports", response_model=ReportsResponse, status_code=status.HTTP_202_ACCEPTED)
    def ingest(payload: ReportsRequest) -> ReportsResponse:
        app.state.api.ingest_reports(payload.reports)
        return ReportsResponse(ingested=len(payload.reports))

    @app.put("/quotas/{table}", status_code=status.HTTP_204_NO_CONTENT)
    def put_quota(table: str, quota: SpaceQuota) -> None:
        app.state.api.set_quota(table, quota)

    @app.delete("/quotas/{table}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_quota(table: str) -> None:
        app.state.api.remove_quota(table)

    @app.get("/usage", response_model=list[TableUsage])
    def usage() -> list[TableUsage]:
        return app.state.api.usage()

    @app.post("/evaluate", response_model=EvaluationReport)
    def evaluate() -> EvaluationReport:
        return app.state.api.evaluate()

    return app


def run(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the space quota observer HTTP service.")
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="TCP port for the service.")
    parser.add_argument(
        "--store", type=str, default=None, help="Optional JSONL store path for region reports."
    )
    parser.add_argument(
        "--report-percent",
        type=float,
        default=0.95,
        help="Fraction of a table's regions that must report before it is evaluated.",
    )
    parser.add_argument("--log-level", default="info", help="Log level passed to uvicorn.")
    args = parser.parse_args(argv)

    config = QuotaObserverConfig(report_percent=args.report_percent, store_path=args.store)
    app = create_app(config=config)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


app = create_app()
