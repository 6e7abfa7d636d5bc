class PageBuilderError(Exception):
    """Base class for every error raised by the storage layer."""


class ValidationError(PageBuilderError):
    """Input rejected before it reached storage."""


class ConstraintViolation(PageBuilderError):
    """
    A uniqueness, check, foreign-key or tree rule was broken.

    The driver exception is chained as ``__cause__``; the message only names
    the operation and the constraint.
    """

    def __init__(self, *, operation, constraint, entity_id=None):
        self.operation = operation
        self.constraint = constraint
        self.entity_id = entity_id

        message = f"{operation} violated constraint '{constraint}'"
        if entity_id is not None:
            message += f" (id={entity_id})"
        super().__init__(message)


class ConcurrencyConflict(PageBuilderError):
    """The stored page changed after the caller's version token."""

    def __init__(self, *, operation, entity_id):
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(
            f"{operation} rejected: page {entity_id} was modified since the given version"
        )
