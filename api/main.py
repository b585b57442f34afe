"""
FastAPI application entrypoint.

Run with:
    uvicorn api.main:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.routes import router
from core.config import Settings
from core.errors import ProctorError
from core.ledger import ScoreLedger

settings = Settings()
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(ledger: Optional[ScoreLedger] = None) -> FastAPI:
    """
    Build the API around a ledger (defaults to one from Settings).

    Returns:
        FastAPI: app with routes and error handlers registered.
    """
    ledger = ledger or ScoreLedger.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ledger.init_schema()
        yield
        ledger.engine.dispose()

    app = FastAPI(title="Proctoring Integrity API", version="1.0.0", lifespan=lifespan)
    app.state.ledger = ledger
    app.include_router(router)

    @app.exception_handler(ProctorError)
    async def proctor_error(request: Request, exc: ProctorError):
        logger.error(f"[api] {request.method} {request.url.path} -> {exc.status_code} "
                     f"session={exc.session_id} {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(RequestValidationError)
    async def request_invalid(request: Request, exc: RequestValidationError):
        logger.warning(f"[api] {request.method} {request.url.path} invalid body: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request."})

    @app.get("/health")
    def health() -> JSONResponse:
        """
        Health check endpoint.

        Returns:
            JSONResponse: 200 when the database answers, 503 otherwise.
        """
        try:
            app.state.ledger.ping()
        except ProctorError:
            return JSONResponse(status_code=503, content={"status": "error", "database": "unavailable"})
        return JSONResponse(status_code=200, content={"status": "ok", "database": "connected"})

    return app


app = create_app()
