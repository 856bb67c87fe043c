"""
Uniform result shape returned across the vault boundary.
"""

from typing import Any, Optional

from pydantic import BaseModel

from ..exceptions import BaseError


class ErrorDetail(BaseModel):
    kind: str
    message: str
    code: str
    error_id: Optional[str] = None


class OperationResult(BaseModel):
    """Either a success payload in ``data`` or a typed ``error``."""

    success: bool
    data: Any = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: BaseError) -> "OperationResult":
        return cls(
            success=False,
            error=ErrorDetail(
                kind=error.kind.value,
                message=error.message,
                code=error.error_code.value,
                error_id=error.error_id,
            ),
        )
