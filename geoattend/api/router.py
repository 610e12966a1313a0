"""
Main API router
"""
from fastapi import APIRouter

from geoattend.api.v1 import (
    health,
    auth,
    attendance,
    manager,
    jobs,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(manager.router, prefix="/manager", tags=["manager"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
