from __future__ import annotations

from typing import Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError
from fastapi.concurrency import run_in_threadpool

from ..config.settings import Settings, get_settings
from ..models.samples import Report
from ..queue.base import MailboxClosed, MailboxTimeout
from ..services.exporter import ExporterContext

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, context: Optional[ExporterContext] = None) -> FastAPI:
    settings = settings or get_settings()
    context = context or ExporterContext(settings)

    app = FastAPI(title="Domoticz Prometheus Exporter", version="0.1.0")
    app.state.exporter = context

    @app.on_event("startup")
    async def startup_event() -> None:
        context.start()
        logger.info(
            "exporter.started",
            listen_address=settings.listen_address,
            metrics_path=settings.metrics_path,
            push_path=settings.push_path,
        )

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        context.stop()

    async def domoticz_post(request: Request) -> JSONResponse:
        body = await request.body()
        try:
            report = Report.model_validate_json(body)
        except ValidationError as exc:
            context.pushes_metric.labels(status="rejected").inc()
            logger.warning("push.rejected", errors=exc.error_count(), detail=exc.errors(include_url=False, include_input=False))
            return JSONResponse({"detail": "invalid domoticz payload"}, status_code=400)
        try:
            await run_in_threadpool(context.ingest, report)
        except MailboxTimeout:
            context.pushes_metric.labels(status="timeout").inc()
            logger.warning("push.timeout", sensor_id=report.id)
            return JSONResponse({"detail": "update worker busy"}, status_code=503)
        except MailboxClosed:
            context.pushes_metric.labels(status="unavailable").inc()
            return JSONResponse({"detail": "exporter shutting down"}, status_code=503)
        context.pushes_metric.labels(status="accepted").inc()
        return JSONResponse({"status": "accepted", "id": report.id})

    async def metrics() -> PlainTextResponse:
        return PlainTextResponse(generate_latest(context.registry), media_type=CONTENT_TYPE_LATEST)

    async def health() -> Dict[str, object]:
        return {"status": "ok", "worker_alive": context.worker.alive, "samples": len(context.store)}

    app.add_api_route(settings.push_path, domoticz_post, methods=["POST"])
    app.add_api_route(settings.metrics_path, metrics, methods=["GET"])
    app.add_api_route("/health", health, methods=["GET"])
    return app


__all__ = ["create_app"]
