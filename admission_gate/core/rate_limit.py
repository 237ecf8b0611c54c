"""Admission enforcement for guarded operations.

This module wires the rate limiting adapters into the service.

Design goals:
- Explicit instances: limiters live in a ``LimiterRegistry`` built from
  settings and handed to the app; nothing here is module-level state.
- One call per logical request: ``enforce`` consumes a slot when it admits,
  so calling it twice for the same request consumes two.
- Typed rejection: a denial raises ``RateLimitExceeded`` carrying the wait
  hint; the HTTP layer decides how to surface it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Depends, Request

from admission_gate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AdmissionDecision,
    LimiterConfig,
)
from admission_gate.adapters.rate_limit.in_memory import new_limiter
from admission_gate.adapters.rate_limit.registry import LimiterRegistry
from admission_gate.core.auth import hash_identity, resolve_identity
from admission_gate.core.config import RateLimitSettings, settings
from admission_gate.core.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitEvent:
    """Observation emitted when a request is denied."""

    policy: str
    key_hash: str
    limit: int
    retry_after_seconds: int


EventSink = Callable[[RateLimitEvent], None]


def enforce(
    limiter: AbstractRateLimiter,
    identity: str,
    *,
    policy: str | None = None,
    event_sink: EventSink | None = None,
) -> AdmissionDecision:
    """Admit one request for ``identity`` or raise.

    Call exactly once per logical request, before any business side effect.

    Args:
        limiter: Limiter instance guarding the operation.
        identity: Stable caller identifier.
        policy: Policy name for logs and the raised error.
        event_sink: Optional observer notified on denial. It never affects
            the decision.

    Returns:
        The admission decision for the admitted request.

    Raises:
        RateLimitExceeded: When the caller's window is full.
    """

    policy_name = policy or limiter.config.key_prefix
    decision = limiter.consume(identity)
    key_hash = hash_identity(identity)

    if decision.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "policy": policy_name,
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
            },
        )
        return decision

    retry_after = decision.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "policy": policy_name,
            "key_hash": key_hash,
            "limit": decision.limit,
            "window_ms": limiter.config.window_ms,
            "retry_after_s": retry_after,
        },
    )

    if event_sink is not None:
        _notify(
            event_sink,
            RateLimitEvent(
                policy=policy_name,
                key_hash=key_hash,
                limit=decision.limit,
                retry_after_seconds=retry_after,
            ),
        )

    raise RateLimitExceeded(
        message=f"Rate limit exceeded for {policy_name!r}. Retry after {retry_after}s.",
        details={"policy": policy_name, "limit": decision.limit, "retry_after_seconds": retry_after},
        retry_after_seconds=retry_after,
        policy=policy_name,
        limit=decision.limit,
    )


def _notify(event_sink: EventSink, event: RateLimitEvent) -> None:
    try:
        event_sink(event)
    except Exception:
        # Observational only; the denial still stands.
        logger.exception("rate_limit.event_sink_failed", extra={"policy": event.policy})


def enforce_policy(
    registry: LimiterRegistry,
    policy: str,
    identity: str,
    *,
    event_sink: EventSink | None = None,
) -> AdmissionDecision:
    """Enforce the limiter registered as ``policy``.

    Raises:
        UnknownPolicyError: If the registry has no such policy.
        RateLimitExceeded: When the caller's window is full.
    """
    return enforce(registry.get(policy), identity, policy=policy, event_sink=event_sink)


def build_registry(
    rate_limit_settings: RateLimitSettings | None = None,
    **limiter_kwargs: object,
) -> LimiterRegistry:
    """Build one limiter per configured policy.

    Extra keyword arguments (``clock``, ``start_reclaimer`` ...) are passed to
    every limiter.

    Raises:
        ConfigurationError: If any policy is invalid. Limiters already built
            are closed before the error propagates.
    """

    cfg = rate_limit_settings or settings.rate_limit
    limiter_kwargs.setdefault("reclaim_interval_ms", cfg.reclaim_interval_ms)
    limiter_kwargs.setdefault("lock_stripes", cfg.lock_stripes)

    registry = LimiterRegistry()
    try:
        for name, policy in cfg.policies.items():
            config = LimiterConfig(
                max_requests=policy.max_requests,
                window_ms=policy.window_ms,
                key_prefix=policy.key_prefix or name,
            )
            limiter = new_limiter(config, **limiter_kwargs)
            try:
                registry.register(name, limiter)
            except Exception:
                limiter.close()
                raise
    except Exception:
        registry.close()
        raise

    logger.info(
        "rate_limit.registry_built",
        extra={"policies": registry.names()},
    )
    return registry


def get_registry(request: Request) -> LimiterRegistry:
    """FastAPI dependency returning the app's limiter registry."""
    return request.app.state.limiters


def get_event_sink(request: Request) -> EventSink | None:
    """FastAPI dependency returning the app's denial observer, if any."""
    return getattr(request.app.state, "rate_limit_event_sink", None)


def require_admission(policy: str) -> Callable[..., Awaitable[str]]:
    """Build a FastAPI dependency that guards a route with ``policy``.

    The dependency resolves the caller identity, enforces the policy and
    returns the identity so the route can reuse it.

    Usage:
        @router.post("/things")
        async def create(identity: str = Depends(require_admission("write"))): ...
    """

    async def _dependency(
        request: Request,
        identity: str = Depends(resolve_identity),
    ) -> str:
        if not settings.app.rate_limit_enabled:
            return identity

        enforce_policy(
            get_registry(request),
            policy,
            identity,
            event_sink=get_event_sink(request),
        )
        return identity

    return _dependency
