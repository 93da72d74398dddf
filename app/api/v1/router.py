"""
Main API router - combines all endpoint routers
"""
from fastapi import APIRouter

from app.api.v1 import chronos, meta, paths, progression

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(
    chronos.router,
    tags=["Chronos Reset"]
)

api_router.include_router(
    paths.router,
    tags=["Path Progression"]
)

api_router.include_router(
    progression.router,
    tags=["Milestones"]
)

api_router.include_router(
    meta.router,
    tags=["Meta"]
)
