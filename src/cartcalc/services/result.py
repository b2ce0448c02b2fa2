"""ServiceResult and ServiceError: the contract every service returns.

INVARIANT: Service methods return a ServiceResult instead of raising for
bad input. The CLI and any other front end consume this type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    ``code`` is one of ``INVALID_CART``, ``INVALID_DISCOUNT``,
    ``CONDITION_DEPTH`` or ``UNKNOWN_DISCOUNT``.
    """

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (``"totals"`` or ``"eligible"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues, such as discount references to lines
            that are not in the cart.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry spans when verbose).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
