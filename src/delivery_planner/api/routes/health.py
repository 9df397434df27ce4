"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_registry_client():
    """Lazy import to avoid startup failures."""
    from ..dependencies import get_registry_client
    return get_registry_client()


@router.get("/health/registry", status_code=status.HTTP_200_OK)
def health_registry() -> dict:
    """Check the order/inventory/driver registry."""
    try:
        client = _get_registry_client()
        if client is None:
            return {
                "service": "registry",
                "configured": False,
                "healthy": False,
                "message": "Registry not configured. Set DP_REGISTRY_BASE_URL.",
            }
        return {"service": "registry", "configured": True, "healthy": client.check_health()}
    except Exception as e:
        return {"service": "registry", "healthy": False, "error": str(e)}
