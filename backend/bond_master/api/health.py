"""Health check endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/api/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "service": "bond-master-api"}
