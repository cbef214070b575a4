from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
from healthcheck import __version__
from healthcheck.agents.errors import TriageFlowError
from healthcheck.api.classifier import router as classifier_router
from healthcheck.api.records import router as records_router
from healthcheck.api.triage import router as triage_router
from healthcheck.config.database import Database
from healthcheck.config.settings import settings
from healthcheck.middleware import JWTAuthMiddleware
from healthcheck.services.wizard_registry import get_wizard_registry
import logging

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open MongoDB on startup; flush pending session writes and close on shutdown."""
    logger.info(f"Starting {settings.service_name} ({settings.environment})")
    await Database.connect_db()
    await Database.ensure_indexes()

    yield

    registry = get_wizard_registry()
    logger.info(f"Shutting down, flushing {len(registry)} live wizard(s)")
    await registry.wait_for_persistence()
    await Database.close_db()


app = FastAPI(
    title="HealthCheck - Symptom Triage",
    description=(
        "Symptom checking with AI triage, follow-up questions, "
        "health history and doctor booking."
    ),
    version=__version__,
    lifespan=lifespan,
)

# Starlette stacks middleware LIFO: CORS, added last, runs first, so
# 401 responses from the JWT layer still carry CORS headers.
app.add_middleware(JWTAuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(triage_router)
app.include_router(records_router)
app.include_router(classifier_router)


@app.exception_handler(TriageFlowError)
async def triage_flow_error_handler(request: Request, exc: TriageFlowError):
    logger.info(
        f"{request.method} {request.url.path} rejected: {exc.error_code} ({exc.message})"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error_code},
    )


def _configured(secret: Optional[str]) -> str:
    return "configured" if secret else "not configured"


@app.get("/health")
async def health_check():
    """Liveness plus the state of each backing service."""
    return {
        "status": "ok",
        "service": settings.service_name,
        "version": __version__,
        "dependencies": {
            "mongodb": await Database.ping(),
            "ai_gateway": _configured(settings.ai_gateway_api_key),
            "email": _configured(settings.resend_api_key),
        },
    }


@app.get("/")
async def root():
    return {
        "message": "HealthCheck - Symptom Triage Service",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.environment == "development",
    )
