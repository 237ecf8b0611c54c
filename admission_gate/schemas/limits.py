"""Pydantic schemas for admission policy responses."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class PolicyInfo(BaseModel):
    """Public view of one configured policy."""

    name: str = Field(..., description="Policy name used by call sites (e.g. 'write').")
    max_requests: int = Field(..., description="Admitted requests allowed per window.")
    window_ms: int = Field(..., description="Trailing window length in milliseconds.")
    key_prefix: str = Field(..., description="Ledger namespace for this policy.")


class PolicyListResponse(BaseModel):
    policies: List[PolicyInfo] = Field(default_factory=list)


class AdmissionCheckResponse(BaseModel):
    """Result of a successful admission check.

    Denials are not represented here; they are returned as 429 errors.
    """

    policy: str = Field(..., description="Policy that was enforced.")
    allowed: bool = Field(True, description="Always true for a 200 response.")
    limit: int = Field(..., description="Requests allowed per window.")
    remaining: int = Field(..., description="Slots left in the window after this request.")
