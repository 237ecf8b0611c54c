"""Routes exposing the configured admission policies.

``POST /v1/limits/{policy}/check`` lets a caller (or a sidecar acting for
one) consume a slot of a named policy before running a guarded operation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from admission_gate.adapters.rate_limit.registry import LimiterRegistry
from admission_gate.core.auth import resolve_identity
from admission_gate.core.rate_limit import (
    EventSink,
    enforce_policy,
    get_event_sink,
    get_registry,
    require_admission,
)
from admission_gate.schemas.limits import AdmissionCheckResponse, PolicyInfo, PolicyListResponse

router = APIRouter(tags=["Limits"])


@router.get("/limits", response_model=PolicyListResponse)
async def list_policies(
    _identity: str = Depends(require_admission("read")),
    registry: LimiterRegistry = Depends(get_registry),
) -> PolicyListResponse:
    """List every configured policy with its limits."""

    return PolicyListResponse(
        policies=[
            PolicyInfo(
                name=name,
                max_requests=limiter.config.max_requests,
                window_ms=limiter.config.window_ms,
                key_prefix=limiter.config.key_prefix,
            )
            for name, limiter in registry
        ]
    )


@router.post("/limits/{policy}/check", response_model=AdmissionCheckResponse)
async def check_admission(
    policy: str,
    identity: str = Depends(resolve_identity),
    registry: LimiterRegistry = Depends(get_registry),
    event_sink: EventSink | None = Depends(get_event_sink),
) -> AdmissionCheckResponse:
    """Consume one slot of ``policy`` for the caller.

    Returns 200 when admitted, 429 with ``Retry-After`` when denied and 404
    for an unknown policy. This check always enforces: ``APP_RATE_LIMIT_ENABLED``
    only switches off the guards on other routes, since consuming a slot is
    the whole purpose of this endpoint.
    """

    decision = enforce_policy(registry, policy, identity, event_sink=event_sink)
    return AdmissionCheckResponse(
        policy=policy,
        allowed=decision.allowed,
        limit=decision.limit,
        remaining=decision.remaining,
    )
