from fastapi import APIRouter
from app.config import settings
from app.schemas.common import HealthResponse

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check; reports which storage backend is configured"""
    return HealthResponse(status="ok", storageBackend=settings.storage_backend)
