"""
HotelPMS application entry point
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hotelpms import __version__
from hotelpms.config import settings
from hotelpms.container import Container, build_container
from hotelpms.errors import ErrorCategory, PMSError
from hotelpms.routers import history, join_requests, rooms

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.AUTH: 401,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.TRANSPORT: 503,
}


def setup_logging(level: str = "INFO"):
    """Configure root logging"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def pms_error_handler(request: Request, exc: PMSError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY.get(exc.category, 400)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "detail": exc.message,
            "path": str(request.url.path),
        },
        headers={"WWW-Authenticate": "Bearer"} if status_code == 401 else None,
    )


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        container: pre-built service container; when None the default
            container is built (and the tables created) at startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        if getattr(app.state, "container", None) is None:
            from hotelpms.database import init_db
            init_db()
            app.state.container = build_container()
        logger.info(f"{settings.APP_NAME} {__version__} started")
        yield

    app = FastAPI(
        title="HotelPMS",
        description="Room lifecycle and workforce admission service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PMSError, pms_error_handler)

    app.include_router(rooms.router)
    app.include_router(join_requests.router)
    app.include_router(history.router)

    @app.get("/health")
    def health_check():
        """Health check"""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
