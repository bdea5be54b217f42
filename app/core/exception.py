from fastapi import HTTPException
from typing import Any, Optional
from app.schemas.result import ErrorCategory


class HouseBudgetException(HTTPException):
    """
    Root of the errors services raise on purpose.

    Each subclass pins an HTTP status and an error category; the middleware
    turns any of them into a failed Result envelope.
    """

    status_code: int = 500
    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)

    def __str__(self) -> str:
        return self.detail


class ResourceNotFoundException(HouseBudgetException):
    """A user, household, invitation or deletion request does not exist for the caller"""

    status_code = 404
    category = ErrorCategory.NOT_FOUND

    def __init__(
        self,
        resource_name: Optional[str] = None,
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            if resource_id is not None:
                message = f"{resource_name} {resource_id} not found"
            else:
                message = f"{resource_name or 'Resource'} not found"
        super().__init__(message)


class AuthenticationException(HouseBudgetException):
    status_code = 401
    category = ErrorCategory.AUTHENTICATION

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationException(HouseBudgetException):
    """Caller is authenticated but lacks the household role the action needs"""

    status_code = 403
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message)


class ConflictException(HouseBudgetException):
    """Request clashes with current state: capacity, existing membership, pending items, races"""

    status_code = 409
    category = ErrorCategory.RESOURCE_CONFLICT

    def __init__(self, message: str = "The request conflicts with the current state"):
        super().__init__(message)


class DuplicateResourceException(ConflictException):
    def __init__(self, resource_name: str, identifier: Optional[str] = None):
        if identifier:
            super().__init__(f"{resource_name} '{identifier}' already exists")
        else:
            super().__init__(f"{resource_name} already exists")


class BadRequestException(HouseBudgetException):
    """Well-formed request that does not apply to the caller's situation"""

    status_code = 400
    category = ErrorCategory.BAD_REQUEST

    def __init__(self, message: str = "Bad request"):
        super().__init__(message)
