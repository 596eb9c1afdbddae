"""Custom exceptions for the gateway."""

from typing import List, Optional


class StudioException(Exception):
    """Base exception for all Character Studio errors."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


# Authentication Exceptions
class MissingTokenError(StudioException):
    """No bearer token on the request."""
    def __init__(self, message: str = "Unauthorized: No token provided."):
        super().__init__(message, status_code=401)


class InvalidTokenError(StudioException):
    """Identity provider rejected the token."""
    def __init__(self, message: str = "Unauthorized: Invalid token."):
        super().__init__(message, status_code=403)


# Resource Exceptions
class ResourceNotFoundError(StudioException):
    """Resource not found."""
    def __init__(self, resource: str, id: str, message: Optional[str] = None):
        self.resource = resource
        self.resource_id = id
        super().__init__(message or f"{resource} not found.", status_code=404)


class ResourceAccessDeniedError(StudioException):
    """Access denied to resource."""
    def __init__(self, message: str = "Forbidden: You do not own this character."):
        super().__init__(message, status_code=403)


# Validation Exceptions
class ValidationError(StudioException):
    """Validation error."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class InvalidStatusTransitionError(ValidationError):
    """Trained character status cannot move to the requested state."""
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move character from '{current}' to '{target}'.")


class CharacterNotReadyError(ValidationError):
    """Trained character has not finished training."""
    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Character is not ready (status: {status}).")


# Upstream Exceptions
class UpstreamServiceError(StudioException):
    """Model, document store or blob store call failed."""
    def __init__(self, service: str, message: str = "Internal Server Error"):
        self.service = service
        super().__init__(message, status_code=500)


class InferenceError(UpstreamServiceError):
    """Model answered but the answer cannot be used."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__("inference", message=reason)


class CompensationError(StudioException):
    """One or more compensating steps failed; manual cleanup is needed."""
    def __init__(self, saga: str, failed_steps: List[str], causes: List[BaseException]):
        self.saga = saga
        self.failed_steps = failed_steps
        self.causes = causes
        self.details = f"Compensation for '{saga}' failed at: {', '.join(failed_steps)}"
        super().__init__(
            "Operation failed and cleanup was incomplete.", status_code=500
        )


class ConfigurationError(StudioException):
    """Invalid gateway configuration."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
