"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_ors_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.ors_client import check_health as ors_health_check
    return ors_health_check


@router.get("/health/ors", status_code=status.HTTP_200_OK)
def health_ors() -> dict:
    """Check OpenRouteService reachability with a minimal matrix request."""
    ors_health_check = _get_ors_health_check()
    return {"service": "openrouteservice", "healthy": ors_health_check()}
