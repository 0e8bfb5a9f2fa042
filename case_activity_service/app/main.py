# FastAPI Application Entry Point
from fastapi import FastAPI
import httpx

# Configuration and Observability
from case_activity_service.app.config import settings
from case_activity_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

# Database connection
from case_activity_service.infrastructure.database import connection as mongo_connection
from case_activity_service.app.bootstrap import ServiceRegistry

# API Routers
from case_activity_service.app.api.v1.endpoints import health as health_router
from case_activity_service.app.api.v1.endpoints import cases as cases_router
from case_activity_service.app.api.v1.endpoints import notifications as notifications_router
from case_activity_service.app.api.v1.endpoints import email_templates as email_templates_router
from case_activity_service.app.api.v1.endpoints import jobs as jobs_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="Case Activity Service",
    description="Records case activity, routes notifications and runs inactivity and digest jobs.",
    version="0.1.0"
)

@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        app.state.http_client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
        HTTPXClientInstrumentor().instrument()
        logger.info(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

        mongo_connection.connect_to_mongo()
        await mongo_connection.ensure_indexes(mongo_connection.db)
        PymongoInstrumentor().instrument()
        logger.info("PyMongo instrumentation complete.")

        app.state.services = ServiceRegistry(mongo_connection.db, app.state.http_client)
        await app.state.services.start()
        logger.info("Notification dispatcher and scheduler started.")
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)
        raise

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    services = getattr(app.state, "services", None)
    if services is not None:
        await services.stop()
        logger.info("Notification dispatcher and scheduler stopped.")

    if getattr(app.state, "http_client", None) is not None:
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

    mongo_connection.close_mongo_connection()

FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router)
app.include_router(cases_router.router, prefix="/api/v1")
app.include_router(notifications_router.router, prefix="/api/v1")
app.include_router(email_templates_router.router, prefix="/api/v1")
app.include_router(jobs_router.router, prefix="/api/v1")

logger.info("API routers included. Application setup complete.")

# To run: uvicorn case_activity_service.app.main:app --reload --port 8000
