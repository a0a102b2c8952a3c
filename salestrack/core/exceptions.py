"""SalesTrack Exception Hierarchy.

All custom exceptions inherit from SalesTrackError.
Raw sqlite3 errors never leave the db package; they are wrapped in
DatabaseError (or ConstraintViolationError) with the cause chained.

Exception Hierarchy:
    SalesTrackError (base)
    ├── ConfigurationError
    ├── ValidationError
    ├── DatabaseError
    │   ├── NotInitializedError
    │   └── ConstraintViolationError
    ├── NotFoundError
    ├── AuthenticationError
    │   ├── DuplicateUsernameError
    │   └── InvalidCredentialsError
    └── WorkflowError
"""


class SalesTrackError(Exception):
    """Base exception for all SalesTrack errors.

    All custom exceptions in SalesTrack inherit from this class,
    allowing for broad exception handling when needed.
    """

    pass


class ConfigurationError(SalesTrackError):
    """Configuration is invalid or missing.

    Raised when:
        - Configuration file is malformed
        - Path is not writable
        - Numeric setting cannot be parsed
    """

    pass


class ValidationError(SalesTrackError):
    """Data validation failed.

    Raised when:
        - Required field is missing
        - Amount is not positive or duration is negative
        - Status or feedback value is unknown
        - Business rule is violated (e.g. setting Won outside conversion)
    """

    pass


class DatabaseError(SalesTrackError):
    """Database operation failed.

    Raised when:
        - Database file cannot be opened
        - Database is locked
        - Query execution fails
    """

    pass


class NotInitializedError(DatabaseError):
    """Repository used before the schema was initialized.

    Fatal to the calling operation. Call Database.initialize() once at
    startup before handing the database to any repository.
    """

    pass


class ConstraintViolationError(DatabaseError):
    """Unique or foreign key constraint violated.

    Raised when:
        - (user_id, number) already exists for a phone number
        - Username already taken at the storage level
        - A row references a parent that does not exist
    """

    pass


class NotFoundError(SalesTrackError):
    """Referenced entity does not exist.

    Raised when a workflow needs an entity as input (prospect to convert,
    phone number to promote, client for a sale, follow-up target).
    Nothing has been persisted when this is raised.
    """

    pass


class AuthenticationError(SalesTrackError):
    """Identity layer failure."""

    pass


class DuplicateUsernameError(AuthenticationError):
    """Sign-up attempted with a username that already exists."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Sign-in failed.

    Same message for unknown user and wrong password, so callers
    cannot tell which one happened.
    """

    pass


class WorkflowError(SalesTrackError):
    """Multi-step workflow aborted.

    The enclosing transaction was rolled back before this was raised,
    so none of the workflow's steps are persisted.
    """

    pass
