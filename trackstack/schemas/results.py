"""
Track Your Stack - Action Results

Payload returned to the presentation layer for every operation.
"""
from typing import Generic, Optional, TypeVar
from pydantic import BaseModel

from trackstack.utils.exceptions import ErrorKind

T = TypeVar("T")


class ActionResult(BaseModel, Generic[T]):
    """Success with data, or a failure tagged by kind."""
    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    retryable: bool = False

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None) -> "ActionResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind, retryable: bool = False) -> "ActionResult[T]":
        return cls(success=False, error=error, error_kind=kind, retryable=retryable)
