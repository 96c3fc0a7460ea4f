"""Health check endpoint."""

from fastapi import APIRouter

from chartscan import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }
