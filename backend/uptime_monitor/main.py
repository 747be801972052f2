"""Main FastAPI application: trigger endpoints plus the periodic batch scheduler."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings
from .database import create_engine, create_session_factory, init_db, close_db
from .routers import checks_router
from .services.email_sender import create_email_sender
from .services.identity import IdentityClient
from .services.notifier import AlertNotifier
from .services.orchestrator import BatchOrchestrator
from .services.prober import Prober
from .services.scheduler import SchedulerService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting Uptime Monitor")

    await init_db(app.state.engine, settings)
    logger.info("Database initialized")

    if settings.scheduler_enabled:
        app.state.scheduler.start()

    yield

    app.state.scheduler.stop()
    await close_db(app.state.engine)
    logger.info("Shutdown complete")


def create_app(settings: Optional[Settings] = None, engine: Optional[AsyncEngine] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    All services are built here from ``settings`` and stored on
    ``app.state``; nothing reads configuration from module globals.
    """
    settings = settings or Settings()
    engine = engine or create_engine(settings)
    session_factory = create_session_factory(engine)

    notifier = AlertNotifier(settings, create_email_sender(settings))
    orchestrator = BatchOrchestrator(settings, session_factory, Prober(settings), notifier)

    app = FastAPI(
        title="Uptime Monitor",
        description="Scheduled availability checks with email alerts",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.notifier = notifier
    app.state.orchestrator = orchestrator
    app.state.scheduler = SchedulerService(settings, orchestrator)
    app.state.identity = IdentityClient(settings)

    # CORS middleware for the dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Malformed or incomplete bodies are client errors
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    app.include_router(checks_router)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Uptime Monitor is RUNNING"

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "scheduler": app.state.scheduler.running,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.web_port)
