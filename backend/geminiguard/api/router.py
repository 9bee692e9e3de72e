"""Central API router that aggregates all route modules."""

from fastapi import APIRouter

from geminiguard.api.analyze import router as analyze_router
from geminiguard.api.health import router as health_router

api_router = APIRouter()

api_router.include_router(analyze_router, tags=["analysis"])
api_router.include_router(health_router, tags=["health"])
