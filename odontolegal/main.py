import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from odontolegal.config import settings
from odontolegal.database import DatabaseSupervisor, engine
from odontolegal.history.reconciliation import pending_appends
from odontolegal.shared.exceptions import DomainError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    supervisor = DatabaseSupervisor(engine)
    await supervisor.wait_until_connected()
    supervisor.start()
    app.state.db_supervisor = supervisor
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")
    yield
    await supervisor.stop()
    await engine.dispose()
    if len(pending_appends):
        logger.warning(f"Shutting down with {len(pending_appends)} unreconciled history/match appends")


async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    # Routers
    from odontolegal.routes.v1.api import api_router
    from odontolegal.auth.router import router as auth_router

    app.include_router(api_router, prefix=settings.API_V1_STR)
    app.include_router(auth_router, prefix=f"{settings.API_V1_STR}/auth", tags=["auth"])

    app.add_exception_handler(DomainError, domain_error_handler)

    # Set all CORS enabled origins
    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health Check
    @app.get("/health")
    def health_check():
        supervisor = getattr(app.state, "db_supervisor", None)
        return {
            "status": "ok",
            "version": settings.VERSION,
            "database": "connected" if supervisor is None or supervisor.connected else "reconnecting",
            "pending_appends": len(pending_appends),
        }

    return app

app = create_app()
