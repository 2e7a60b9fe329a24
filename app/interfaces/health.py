"""
Health check router.

Liveness probe for the custody API. Reports the version and which
repository backend the process was configured with; it does not
touch the database.
"""

from fastapi import APIRouter

from app.core.config import settings
from app.interfaces.custody.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application status, version and storage backend.",
)
def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=settings.version,
        storage_backend=settings.custody_repository_backend,
    )
