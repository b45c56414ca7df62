from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import asyncio

from app.core.config import settings
from app.core.security_config import configure_security_middleware, get_cors_config
from app.api.v1.endpoints import auth, classes, exams, report_cards
from app.api import health as health_router
from app.infrastructure.database.base import create_tables
from app.infrastructure.security.rate_limiter import login_rate_limiter
from app.utils.error_handler import register_exception_handlers

logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    logger.info("Application startup sequence initiated...")
    settings.validate_for_startup()
    logger.info(
        f"Environment: {settings.ENVIRONMENT}, login limits: {settings.max_login_attempts} attempts, "
        f"{settings.max_rate_limit_violations} violations"
    )

    if settings.DB_AUTO_CREATE:
        create_tables()

    app_instance.state.login_sweeper_task = None
    if settings.START_LOGIN_SWEEPER:
        app_instance.state.login_sweeper_task = asyncio.create_task(
            login_rate_limiter.run_sweeper(settings.LOGIN_SWEEP_INTERVAL_SECONDS)
        )

    try:
        yield
    finally:
        logger.info("Application shutdown sequence initiated...")
        sweeper = app_instance.state.login_sweeper_task
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass


app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    version="0.1.0",
    lifespan=lifespan,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

register_exception_handlers(app)

configure_security_middleware(app)

cors_config = get_cors_config()
app.add_middleware(CORSMiddleware, **cors_config)

api_v1_router_prefix = settings.API_V1_PREFIX
app.include_router(
    auth.router,
    prefix=f"{api_v1_router_prefix}/auth",
    tags=["V1 - Authentication"]
)
app.include_router(
    classes.router,
    prefix=f"{api_v1_router_prefix}/classes",
    tags=["V1 - Classes"]
)
app.include_router(
    report_cards.router,
    prefix=f"{api_v1_router_prefix}/report-cards",
    tags=["V1 - Report Cards"]
)
app.include_router(
    exams.router,
    prefix=f"{api_v1_router_prefix}/exams",
    tags=["V1 - Exams"]
)
app.include_router(health_router.router, prefix=api_v1_router_prefix, tags=["Health Checks"])


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME} - Version {app.version}"}
