from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Generic, TypeVar, Optional

T = TypeVar("T")


class ErrorCategory(str, Enum):
    """Machine-readable error kind; clients branch on this rather than on the message."""

    VALIDATION = "Validation"
    NOT_FOUND = "Not Found"
    AUTHENTICATION = "Authentication"
    AUTHORIZATION = "Authorization"
    INTERNAL = "Internal Server Error"
    BAD_REQUEST = "Bad Request"
    RESOURCE_CONFLICT = "Resource Conflict"


class Error(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    message: str
    status_code: int
    category: ErrorCategory


class Result(BaseModel, Generic[T]):
    """
    Body of every HouseBudget response.

    Success carries `data` (a household, an invitation, a message, ...);
    failure carries `error`. The two are never set together.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[Error] = None

    @classmethod
    def successful(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: Error) -> "Result[T]":
        return cls(success=False, error=error)


class MessageResponse(BaseModel):
    """Payload for actions whose only outcome is a sentence: leave, remove, delete, cancel."""

    message: str
