"""
Health check and version endpoints
"""
from fastapi import APIRouter
from geoattend.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint

    Returns service status and the configured business time zone.
    """
    return {
        "status": "ok",
        "service": "geoattend",
        "tz": settings.BUSINESS_TZ,
    }


@router.get("/version")
async def get_version():
    """Application version and environment"""
    return {
        "service": "geoattend",
        "version": settings.VERSION or "1.0.0",
        "env": settings.APP_ENV,
    }
