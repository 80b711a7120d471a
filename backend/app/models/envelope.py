"""Response envelope shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """``{data, error}`` wrapper; exactly one of the two is set on a normal response."""

    data: T | None = None
    error: str | None = None


def ok(data: T) -> Envelope[T]:
    """Wrap a successful payload."""
    return Envelope(data=data, error=None)
