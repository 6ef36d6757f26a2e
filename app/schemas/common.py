"""Response envelope shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """{success, message, data?} wrapper."""

    success: bool = Field(default=True, description="False for any error response")
    message: str | None = Field(default=None, description="Human-readable outcome")
    data: T | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
