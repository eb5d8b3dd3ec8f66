"""
Health check endpoint.

Used by load balancers and deployment systems to know the process is
alive. It deliberately does not call the storage provider: a slow bucket
should not make the service look dead.
"""

from fastapi import APIRouter, status
from pydantic import BaseModel

from ..dependencies import SettingsDep

router = APIRouter()


class StatusResponse(BaseModel):
    """Liveness response."""
    status: str
    version: str
    backend: str


@router.get(
    "/status",
    response_model=StatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Returns 200 if the service is running. Does not check the bucket.",
)
async def get_status(settings: SettingsDep) -> StatusResponse:
    return StatusResponse(
        status="Server is running",
        version=settings.api_version,
        backend=settings.storage_backend,
    )
