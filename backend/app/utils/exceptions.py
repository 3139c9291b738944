"""
Custom exceptions for the MatchDay API.

Domain code raises these directly; FastAPI turns them into responses with the
matching status code.
"""

from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception with status code and detail message."""

    retryable = False

    def __init__(self, status_code: int, detail: str, headers: dict = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundException(APIException):
    """Exception raised when a requested match, team, trophy or player is absent."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ValidationException(APIException):
    """Exception raised when a payload is malformed (rating, roster, stats, times)."""

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedException(APIException):
    """Exception raised when no caller identity accompanies the request."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenException(APIException):
    """Exception raised when the caller is not the captain allowed to act."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidStateException(APIException):
    """Exception raised when the match status does not permit the action."""

    def __init__(self, detail: str = "Action not allowed in the current match state"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class VersionConflictException(InvalidStateException):
    """A conditional replace lost the race against a concurrent writer."""

    retryable = True

    def __init__(self, collection: str, key: str):
        super().__init__(
            detail=f"Concurrent update on {collection}/{key}, please retry"
        )
        self.collection = collection
        self.key = key


class DocumentExistsException(APIException):
    """Exception raised by a conditional insert when the key is already taken."""

    def __init__(self, collection: str, key: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Document {collection}/{key} already exists",
        )


class DependencyTimeoutException(APIException):
    """Exception raised when the entity store or another dependency is unavailable."""

    retryable = True

    def __init__(self, service: str, detail: str = None):
        message = f"Service unavailable: {service}"
        if detail:
            message += f" - {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
        self.service = service
