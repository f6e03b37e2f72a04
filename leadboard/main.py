"""FastAPI application entry point"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from leadboard.core.config import settings
from leadboard.core.exceptions import CRMError
from leadboard.middleware.tenant import TenantMiddleware
from leadboard.services.notifications import build_default_sink
from leadboard.services.reminder_sweep import ReminderRunner, TaskReminderSweep
from leadboard.utils.logger import logger

# Import routers
from leadboard.api.v1 import board, leads, sellers, stages, tasks

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Sales CRM: lead pipeline, stage transitions and task reminders",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(TenantMiddleware)

# Configure CORS (added last so it wraps the tenant middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One sweep per process: the manual endpoint and the background runner share
# its notified-task memory.
app.state.reminder_sweep = TaskReminderSweep(build_default_sink())
app.state.reminder_runner = None


@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event():
    """Run on application startup"""
    logger.info(f"Starting {settings.APP_NAME}")
    logger.info(f"Environment: {settings.APP_ENV}")

    if settings.RUN_MIGRATIONS:
        try:
            from leadboard.core.migrations import run_migrations

            migration_success = await run_migrations()
            if not migration_success:
                logger.warning("Migrations failed, but application will continue")
        except Exception as e:
            logger.error(f"Error running migrations: {e}", exc_info=True)
            logger.warning("Application will continue without running migrations")

    if settings.AUTO_SEED:
        try:
            from leadboard.core.seed import check_if_seeded, run_seed

            logger.info("Checking if database needs seeding...")
            if not await check_if_seeded():
                logger.info("Database not seeded. Running automatic seed...")
                await run_seed()
            else:
                logger.info("Database already seeded, skipping auto-seed")
        except Exception as e:
            logger.error(f"Error during auto-seed: {e}", exc_info=True)
            logger.warning("Application will continue without seed data")
    else:
        logger.info("Auto-seed is disabled (AUTO_SEED=false)")

    if settings.SWEEP_ENABLED:
        runner = ReminderRunner(app.state.reminder_sweep, settings.SWEEP_INTERVAL_SECONDS)
        runner.start()
        app.state.reminder_runner = runner


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown"""
    if app.state.reminder_runner is not None:
        await app.state.reminder_runner.stop()
        app.state.reminder_runner = None
    logger.info(f"Shutting down {settings.APP_NAME}")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


# Include routers
app.include_router(stages.router, prefix=settings.API_V1_PREFIX, tags=["stages"])
app.include_router(leads.router, prefix=settings.API_V1_PREFIX, tags=["leads"])
app.include_router(tasks.router, prefix=settings.API_V1_PREFIX, tags=["tasks"])
app.include_router(board.router, prefix=settings.API_V1_PREFIX, tags=["board"])
app.include_router(sellers.router, prefix=settings.API_V1_PREFIX, tags=["sellers"])
