"""Core package - Configuration, logging, exceptions.

This package provides foundational infrastructure used by all other layers.

Modules:
    - config: Environment and configuration management
    - logging: Structured JSON logging
    - exceptions: Custom exception hierarchy
    - phone: Phone number normalization
    - tasks: Serial background task execution
"""

from salestrack.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConstraintViolationError,
    DatabaseError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    NotFoundError,
    NotInitializedError,
    SalesTrackError,
    ValidationError,
    WorkflowError,
)

__all__ = [
    "SalesTrackError",
    "ConfigurationError",
    "ValidationError",
    "DatabaseError",
    "NotInitializedError",
    "ConstraintViolationError",
    "NotFoundError",
    "AuthenticationError",
    "DuplicateUsernameError",
    "InvalidCredentialsError",
    "WorkflowError",
]
