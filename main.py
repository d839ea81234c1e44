"""
SCM Adapter - FastAPI Application

HTTP surface around the adapter registry:
- GitLab webhook receiver returning the canonical event
- Breaker statistics per provider host
- Health and Prometheus metrics endpoints
"""

import json
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from adapters.gitlab import GitLabAdapter
from adapters.registry import ScmRegistry
from utils.config import Config
from utils.logger import setup_logging
from utils.webhook import verify_webhook_token


# =============================================================================
# Application Lifecycle Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Loads configuration, sets up logging and builds the adapter registry on
    startup; closes adapter transports on shutdown.
    """
    config = Config()
    setup_logging()

    settings = config.gitlab_settings()
    app.state.config = config
    app.state.registry = ScmRegistry([GitLabAdapter(settings)])
    logger.info(f"Starting SCM adapter API ({', '.join(app.state.registry.tags())})")

    yield

    logger.info("Shutting down SCM adapter API")
    await app.state.registry.aclose()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="SCM Adapter",
    description="GitLab SCM adapter for build orchestrators",
    version="1.0.0",
    lifespan=lifespan,
)

api_v1_prefix = "/v1"


# =============================================================================
# Dependencies
# =============================================================================

async def get_registry(request: Request) -> ScmRegistry:
    """
    Dependency injection for the adapter registry.

    Returns:
        ScmRegistry: Registry built at startup
    """
    return request.app.state.registry


async def get_config(request: Request) -> Config:
    """
    Dependency injection for Config.

    Returns:
        Config: Application configuration loaded at startup
    """
    return request.app.state.config


async def verify_webhook(
    request: Request,
    config: Config = Depends(get_config),
) -> bool:
    """
    Verify the X-Gitlab-Token header.

    Raises:
        HTTPException: If the token does not match the configured secret
    """
    if not verify_webhook_token(dict(request.headers), config.GITLAB_WEBHOOK_SECRET):
        raise HTTPException(status_code=401, detail="Invalid webhook token")

    return True


# =============================================================================
# API Endpoints (v1)
# =============================================================================

@app.get("/")
async def root(registry: ScmRegistry = Depends(get_registry)):
    """Root endpoint with API information."""
    return {
        "name": "SCM Adapter",
        "version": "1.0.0",
        "status": "operational",
        "scm_contexts": registry.tags(),
        "docs": "/docs",
        "metrics": "/metrics",
    }


@app.get("/health")
async def health_check(registry: ScmRegistry = Depends(get_registry)):
    """Health check endpoint for container orchestration."""
    open_breakers = [
        tag for tag, stats in registry.stats().items() if stats.state.value != "closed"
    ]
    return {
        "status": "degraded" if open_breakers else "healthy",
        "open_breakers": open_breakers,
    }


@app.post(f"{api_v1_prefix}/webhook")
async def receive_webhook(
    request: Request,
    registry: ScmRegistry = Depends(get_registry),
    token_verified: bool = Depends(verify_webhook),
):
    """
    Receive a provider webhook and return its canonical event.

    Returns:
        200 with the canonical event, or 202 when no adapter acts on the delivery

    Raises:
        HTTPException: If the body is not JSON
    """
    try:
        payload = await request.json()
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON payload: {e}")

    headers = dict(request.headers)
    adapter = await registry.for_webhook(headers, payload)
    if adapter is None:
        logger.info(f"Webhook ignored (event: {headers.get('x-gitlab-event')})")
        return JSONResponse(status_code=202, content={"status": "ignored"})

    event = await adapter.normalize_webhook(headers, payload)
    logger.info(
        f"Webhook accepted: scm_context={adapter.identity_tag}, "
        f"type={event.type}, action={event.action}, branch={event.branch}, sha={event.sha}"
    )

    return JSONResponse(
        status_code=200,
        content={"status": "accepted", "event": event.model_dump(by_alias=True)},
    )


@app.get(f"{api_v1_prefix}/stats")
async def breaker_stats(registry: ScmRegistry = Depends(get_registry)):
    """Circuit breaker statistics per provider host."""
    return {tag: stats.model_dump(mode="json") for tag, stats in registry.stats().items()}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3008")),
        access_log=True,
        workers=1,
    )
