"""
Health check route.
"""
from fastapi import APIRouter, Request
from ephemeral_paste.models import HealthCheck

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
async def health_check(request: Request) -> HealthCheck:
    """
    Health check endpoint.
    Returns 200 with ok=true if the paste store answers a round-trip.
    """
    is_healthy = await request.app.state.store.ping()
    return HealthCheck(ok=is_healthy)
