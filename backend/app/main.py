"""
SalesPulse - customer health scoring and AI sales follow-up tasks

FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.core.config import get_settings
from backend.app.core.database import async_session_maker, get_db_context
from backend.app.core.logging import setup_logging, get_logger
from backend.app.core.observability import setup_tracing
from backend.app.core.tenant import TenantError
from backend.app.api import ai_tasks, auth, cron, customer_health, health, sales_tasks
from backend.app.middleware.trace import TracingMiddleware

settings = get_settings()

# Initialize logging
setup_logging(level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    from backend.app.services.auth_service import seed_default_users
    try:
        async with get_db_context() as session:
            await seed_default_users(session)
    except Exception as e:
        logger.warning(f"Could not seed default users: {e}")

    scan_task = None
    if settings.sales_scan_schedule_enabled:
        from backend.app.services.sales_scan import run_scheduled_scans
        from backend.app.workers.scheduled import start_scheduler

        scan_task = start_scheduler(
            settings.sales_scan_interval_seconds,
            run_scheduled_scans,
            async_session_maker,
        )
        logger.info(f"Sales scan scheduler started (interval={settings.sales_scan_interval_seconds}s)")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    if scan_task and not scan_task.done():
        scan_task.cancel()


app = FastAPI(
    title=settings.app_name,
    description="Customer health scoring and AI-generated sales follow-up tasks",
    version=settings.app_version,
    lifespan=lifespan,
)

# Initialize Tracing
setup_tracing(app)

app.add_middleware(TracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID", "X-Tenant-ID"],
)


@app.exception_handler(TenantError)
async def tenant_error_handler(request: Request, exc: TenantError):
    logger.warning(f"Tenant resolution failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


app.include_router(health.router, tags=["Health"])
app.include_router(
    auth.router,
    prefix=f"{settings.api_prefix}/auth",
    tags=["Authentication"],
)
app.include_router(
    customer_health.router,
    prefix=f"{settings.api_prefix}/sales-customers/health",
    tags=["Customer Health"],
)
app.include_router(
    sales_tasks.router,
    prefix=f"{settings.api_prefix}/sales-customers/ai-tasks",
    tags=["AI Sales Tasks"],
)
app.include_router(
    ai_tasks.router,
    prefix=f"{settings.api_prefix}/ai-tasks",
    tags=["AI Task Queue"],
)
app.include_router(
    cron.router,
    prefix=f"{settings.api_prefix}/cron",
    tags=["Cron"],
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
