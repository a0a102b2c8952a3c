"""Tests for exception hierarchy."""

import pytest

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


class TestExceptionHierarchy:
    """Test that exceptions inherit correctly."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            ValidationError,
            DatabaseError,
            NotFoundError,
            AuthenticationError,
            WorkflowError,
        ],
    )
    def test_direct_children_inherit_from_base(self, exc_class):
        """All top-level errors are SalesTrackError."""
        assert issubclass(exc_class, SalesTrackError)

    def test_storage_errors_are_database_errors(self):
        """NotInitializedError and ConstraintViolationError are DatabaseError."""
        assert issubclass(NotInitializedError, DatabaseError)
        assert issubclass(ConstraintViolationError, DatabaseError)

    def test_identity_errors_are_authentication_errors(self):
        """Sign-up and sign-in failures share AuthenticationError."""
        assert issubclass(DuplicateUsernameError, AuthenticationError)
        assert issubclass(InvalidCredentialsError, AuthenticationError)

    def test_not_found_is_not_a_validation_error(self):
        """Missing entities and bad input stay distinguishable."""
        assert not issubclass(NotFoundError, ValidationError)
        assert not issubclass(ValidationError, NotFoundError)


class TestExceptionMessages:
    """Test exception message handling."""

    def test_exception_with_message(self):
        """Exceptions accept message."""
        exc = NotFoundError("Prospect 42 not found")
        assert str(exc) == "Prospect 42 not found"

    def test_can_catch_by_base(self):
        """Specific errors are caught by the base class."""
        with pytest.raises(SalesTrackError):
            raise DuplicateUsernameError("Username already exists: amina")
