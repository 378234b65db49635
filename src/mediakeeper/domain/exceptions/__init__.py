"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - always use a specific subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity.

    Used by the task registry: every task type has exactly one handler.
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422

    Example:
        raise ValidationError("Interval must be at least 1 minute")
    """

    pass


class ConfigurationError(DomainException):
    """Invalid configuration.

    Raised for invalid quality profiles (no included levels, cutoff outside the
    included levels) and invalid quality rankings. Fatal to the decision call - the
    decision engine NEVER falls back to "accept everything".

    Example:
        raise ConfigurationError("Quality profile 'HD' has no included levels")
    """

    pass


class CollaboratorError(DomainException):
    """An external collaborator (indexer, download client, persistence) failed.

    Recorded as a failed task run; the task stays scheduled for its next interval.
    """

    def __init__(self, message: str, collaborator: str | None = None) -> None:
        super().__init__(message)
        self.collaborator = collaborator


class TransientNetworkError(CollaboratorError):
    """Collaborator unreachable or timed out - next run may succeed."""

    pass


class AuthenticationError(CollaboratorError):
    """Collaborator rejected our credentials (e.g. invalid API key)."""

    def __init__(
        self,
        message: str,
        collaborator: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message, collaborator)
        self.http_status = http_status


class PersistenceError(CollaboratorError):
    """Reading or writing the persistence layer failed."""

    pass


class ConcurrencyViolation(DomainException):
    """Attempt to start a task that is already running.

    Hey future me - the scheduler never raises this to callers of run_now()! It is
    the event payload of a reported "skipped" run so observers can see why nothing
    happened.
    """

    def __init__(self, task_type: Any) -> None:
        super().__init__(f"Task {task_type} is already running")
        self.task_type = task_type


__all__ = [
    "AuthenticationError",
    "CollaboratorError",
    "ConcurrencyViolation",
    "ConfigurationError",
    "DomainException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "PersistenceError",
    "TransientNetworkError",
    "ValidationError",
]
