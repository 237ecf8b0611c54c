from __future__ import annotations

from fastapi import APIRouter, Depends

from admission_gate.adapters.rate_limit.registry import LimiterRegistry
from admission_gate.core.rate_limit import get_registry

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(registry: LimiterRegistry = Depends(get_registry)) -> dict:
    """Liveness check. Not rate limited.

    Returns:
        dict: ``status`` plus the names of the loaded policies.
    """

    return {"status": "ok", "policies": registry.names()}
