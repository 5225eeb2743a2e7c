from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from testdeck.api.errors import STATUS_BY_ERROR
from testdeck.api.routes import api_router
from testdeck.config.settings import settings
from testdeck.core.database import create_tables
from testdeck.core.dependencies import container
from testdeck.core.exceptions import TestDeckError
from testdeck.core.logging_config import configure_logging

configure_logging(settings.log_level)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up", storage_backend=container.storage_backend)

    if container.uses_local_store:
        container.local_store()
        logger.info("Local JSON store ready", directory=settings.local_storage_dir)
    else:
        try:
            create_tables()
        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise

    yield

    closed = container.import_service().shutdown()
    logger.info("Application shut down", import_sessions_dropped=closed)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    app = FastAPI(
        title="TestDeck API",
        description="Test case, test run and CSV import management",
        version="1.0.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            user_id=request.headers.get("x-user-id"),
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    # Domain errors that a route did not translate itself
    @app.exception_handler(TestDeckError)
    async def domain_error_handler(request: Request, exc: TestDeckError):
        status_code = STATUS_BY_ERROR.get(type(exc), 400)
        logger.warning("Domain error", path=request.url.path, error=exc.message, status_code=status_code)
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", method=request.method, path=request.url.path,
                     error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
