# FastAPI Application Entry Point
import logging
from fastapi import FastAPI
import httpx

# Configuration and Observability
from smcr_service.app.config import settings
from smcr_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from smcr_service.app.service.store import SmcrDataStore
from smcr_service.app.service.verification import VerificationRunner
from smcr_service.infrastructure.fca_register_client import FcaRegisterClient
from smcr_service.infrastructure.smcr_api_client import SmcrApiClient

# API Routers
from smcr_service.app.api.v1.endpoints import health as health_router
from smcr_service.app.api.v1.endpoints import firms as firms_router
from smcr_service.app.api.v1.endpoints import people as people_router
from smcr_service.app.api.v1.endpoints import workflows as workflows_router
from smcr_service.app.api.v1.endpoints import compliance as compliance_router
from smcr_service.app.api.v1.endpoints import verification as verification_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="SM&CR Workspace Service",
    description="Backend-for-frontend over the SM&CR register: people, roles, workflows, assessments and breaches.",
    version="0.1.0"
)

# Usable before startup runs (e.g. under TestClient without a lifespan)
app.state.verification_runner = VerificationRunner()

# --- Event Handlers ---
@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        app.state.http_client = httpx.AsyncClient(
            base_url=settings.SMCR_API_BASE_URL, timeout=settings.DEFAULT_HTTP_TIMEOUT
        )
        HTTPXClientInstrumentor().instrument()
        logger.info(f"HTTPX AsyncClient initialized for {settings.SMCR_API_BASE_URL} "
                    f"with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

        api = SmcrApiClient(app.state.http_client)
        register_client = FcaRegisterClient(app.state.http_client)
        app.state.store = SmcrDataStore(api, register_client=register_client)

        await app.state.store.load_firms()
        logger.info(f"Workspace store initialised; active firm is {app.state.store.active_firm_id}.")
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")
    runner = app.state.verification_runner
    if runner.cancel():
        logger.info("Cancelled in-progress re-verification run.")

    if hasattr(app.state, 'http_client') and app.state.http_client:
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router, prefix="/api/v1")
app.include_router(firms_router.router, prefix="/api/v1")
app.include_router(people_router.router, prefix="/api/v1")
app.include_router(workflows_router.router, prefix="/api/v1")
app.include_router(compliance_router.router, prefix="/api/v1")
app.include_router(verification_router.router, prefix="/api/v1")

logger.info("API routers included. Application setup complete.")

# To run: uvicorn smcr_service.app.main:app --reload --port 8000
