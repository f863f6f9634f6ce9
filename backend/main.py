import os
import signal
from contextlib import asynccontextmanager
from utils.utcnow import utcnow
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import traceback

from config import settings
from api.routes import router
from services import EventSourceError, ExitSignal, IngestorApp
from utils.logger import setup_logging, get_logger

# Setup logging
setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON, log_file=settings.LOG_FILE)
logger = get_logger("main")


def _request_process_exit(exit_signal: str) -> None:
    """Let the server run its own shutdown once the services stopped by themselves"""
    logger.warning("Services stopped, terminating the process", signal=exit_signal)
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting Account Update Ingestor...")

    ingestor_app = IngestorApp(on_exit=_request_process_exit)
    app.state.ingestor_app = ingestor_app

    try:
        if not ingestor_app.init():
            logger.critical("Failed to init services", signal=ExitSignal.INIT_FAIL.value)
            raise RuntimeError("Account ingestor services failed to initialize")

        if settings.MOCK_AUTOSTART:
            try:
                queued = await ingestor_app.start()
                logger.info("Mock event casting started", queued=queued, source=ingestor_app.source.source)
            except EventSourceError as e:
                # Keep serving: a recast can be requested once the source is reachable.
                logger.error("Event source failed to start monitoring for events", error=str(e))

        logger.info("All services started successfully")

        yield

    except Exception as e:
        logger.critical(
            "Startup failed", error=str(e), traceback=traceback.format_exc()
        )
        raise

    finally:
        logger.info("Shutting down...")
        drained = await ingestor_app.graceful_shutdown(signal.Signals.SIGTERM.name)
        logger.info("Shutdown complete", callbacks_drained=drained)


app = FastAPI(
    title="Account Update Ingestor",
    description="Indexing of account updates, token leaderboard and debounced callbacks",
    version="1.0.0",
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500, content={"detail": "Internal server error", "error": str(exc)}
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API routes
app.include_router(router, prefix=settings.API_PREFIX)


# Health checks
@app.get("/health")
async def health_check():
    """Basic health check - for load balancers"""
    return {"status": "ok"}


@app.get("/health/live")
async def liveness_check():
    """Liveness probe - is the service running?"""
    return {"status": "alive", "timestamp": utcnow().isoformat()}


@app.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness probe - are the ingestion services bound and running?"""
    ingestor_app = getattr(request.app.state, "ingestor_app", None)
    checks = {
        "services": bool(ingestor_app and ingestor_app.is_connected()),
        "event_source": bool(ingestor_app and ingestor_app.source_active),
    }
    return {
        "status": "ready" if checks["services"] else "not_ready",
        "checks": checks,
        "timestamp": utcnow().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        # Keep a single worker: the index, leaderboard and pending callbacks
        # live in process memory.
        timeout_keep_alive=30,
    )
