"""
HTTP boundary for the PcAnalys report service.

Endpoints:
- POST /api/analyze: ingest a hardware snapshot from any agent generation
- GET /api/report/{id}: stored analysis plus display summary
- POST /api/recommend: stream recommendations as plain text
- GET /api/stats, /api/status, /health

Errors before a response is committed are rendered as JSON by the
PcAnalysError handlers. Once a recommendation stream has started, failures
only appear in-band.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from pcanalys.config import constants
from pcanalys.config.manager import ConfigManager
from pcanalys.schemas.analysis import is_valid_analysis_id, isoformat, utcnow
from pcanalys.services.analysis_store import AnalysisStore
from pcanalys.services.errors import (
    InternalFault,
    InvalidRequest,
    MalformedInput,
    NotFound,
    PcAnalysError,
)
from pcanalys.services.normalizer import extract_timestamp, normalize
from pcanalys.services.recommendation.orchestrator import (
    RecommendationStream,
    RecommendationStreamOrchestrator,
)
from pcanalys.services.report_service import build_report
from pcanalys.utils.logger import log

API_VERSION = "1.0.0"
SERVICE_NAME = "PcAnalys API"


class RecommendRequest(BaseModel):
    analysisId: Optional[str] = None
    usageProfile: Optional[str] = None
    profile: Optional[str] = None  # older web clients

    @property
    def usage_label(self) -> Optional[str]:
        return self.usageProfile if self.usageProfile is not None else self.profile


class RecommendationResponse(StreamingResponse):
    """
    Plain-text streaming response over a RecommendationStream.

    The stream is closed however the response ends, including a client that
    disconnects before the body loop starts.
    """

    def __init__(self, stream: RecommendationStream):
        super().__init__(
            stream,
            media_type="text/plain; charset=utf-8",
            headers={"Cache-Control": "no-cache"},
        )
        self.stream = stream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.stream.close()


def _timestamp() -> str:
    return isoformat(utcnow())


def error_response(exc: PcAnalysError, message: Optional[str] = None) -> JSONResponse:
    body = {
        "success": False,
        "error": exc.label,
        "message": message or exc.message,
        "statusCode": exc.status_code,
        "timestamp": _timestamp(),
    }
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(
    store: AnalysisStore,
    orchestrator: RecommendationStreamOrchestrator,
    config: ConfigManager
) -> FastAPI:
    """Build the FastAPI application around already constructed services."""
    started_at = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"{SERVICE_NAME} starting ({config.get('environment')})")
        yield
        if orchestrator.active_streams:
            log.info(f"Waiting for {orchestrator.active_streams} recommendation stream(s) to finish")
        await orchestrator.wait_idle()
        log.info(f"{SERVICE_NAME} stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        description="Hardware analysis reports and streamed upgrade recommendations.",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Desktop agents post from arbitrary origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # --- Error Handling ---

    @app.exception_handler(PcAnalysError)
    async def handle_domain_error(request: Request, exc: PcAnalysError):
        if isinstance(exc, InternalFault) and not config.is_development:
            return error_response(exc, "Something went wrong")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"path": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
            for err in exc.errors()
        ]
        return error_response(InvalidRequest("Invalid request body", details=details))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        log.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if config.is_development else "Something went wrong"
        return error_response(InternalFault(message))

    # --- Public Endpoints ---

    @app.get("/health", tags=["System"])
    async def health_check():
        """Verify API is alive."""
        return {
            "success": True,
            "status": "OK",
            "timestamp": _timestamp(),
            "uptime": round(time.time() - started_at, 3),
            "activeStreams": orchestrator.active_streams,
        }

    @app.get("/api/status", tags=["System"])
    async def api_status():
        return {
            "success": True,
            "service": SERVICE_NAME,
            "version": API_VERSION,
            "environment": config.get("environment"),
            "timestamp": _timestamp(),
        }

    # --- Analyses ---

    @app.post("/api/analyze", tags=["Analysis"], status_code=201)
    async def analyze(request: Request):
        """Normalize and store a hardware snapshot."""
        try:
            payload = await request.json()
        except ValueError:
            raise MalformedInput("Request body must be valid JSON", paths=["root"])

        profile = normalize(payload)
        timestamp = extract_timestamp(payload)
        record = await run_in_threadpool(store.create, profile, payload, timestamp)

        return {
            "success": True,
            "id": record.id,
            "data": {"id": record.id, "createdAt": isoformat(record.created_at)},
            "timestamp": _timestamp(),
        }

    @app.get("/api/report/{analysis_id}", tags=["Analysis"])
    async def get_report(analysis_id: str):
        if not is_valid_analysis_id(analysis_id):
            raise InvalidRequest(
                "Invalid analysis ID format",
                details=[{"path": "id", "value": analysis_id}],
            )
        record = await run_in_threadpool(store.get_by_id, analysis_id)
        if record is None:
            raise NotFound("Analysis not found")
        return {"success": True, "data": build_report(record), "timestamp": _timestamp()}

    @app.get("/api/stats", tags=["Analysis"])
    async def get_stats(days: int = Query(constants.DEFAULT_STATS_WINDOW_DAYS, ge=1, le=3650)):
        stats = await run_in_threadpool(store.get_stats, days)
        return {"success": True, "data": {"days": days, **stats}, "timestamp": _timestamp()}

    # --- Recommendations ---

    @app.post("/api/recommend", tags=["Recommendation"])
    async def recommend(body: RecommendRequest):
        """
        Stream recommendations for a stored analysis.

        Validation, lookup and the first generated chunk all happen before the
        200 is sent, so those failures still get a structured JSON error.
        """
        stream = await orchestrator.open_stream(body.analysisId, body.usage_label)
        return RecommendationResponse(stream)

    return app
