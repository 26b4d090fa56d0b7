"""
PlagCheck client status service - FastAPI application
Exposes backend reachability and response-cache controls
"""
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query

from plagcheck.api_client import CachedApiClient, get_api_client
from plagcheck.schemas import BackendHealth, CacheClearResult
from config.settings import settings

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = "IUH PlagCheck Client"

app = FastAPI(
    title=APP_NAME,
    description="Cached client for the IUH_PLAGCHECK backend API",
    version=APP_VERSION,
)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/backend/health", response_model=BackendHealth)
def backend_health(client: CachedApiClient = Depends(get_api_client)):
    """Check whether the PlagCheck backend is up."""
    return client.health_check()


@app.get("/cache/stats")
def cache_stats(client: CachedApiClient = Depends(get_api_client)):
    """Get cache statistics."""
    return client.get_cache_stats()


@app.post("/cache/clear", response_model=CacheClearResult)
def cache_clear(
    prefix: Optional[str] = Query(default=None, description="Path prefix to clear; all entries when omitted"),
    client: CachedApiClient = Depends(get_api_client),
):
    """Drop cached GET responses."""
    return CacheClearResult(prefix=prefix, cleared=client.clear_cache(prefix))
