class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class InsufficientStockError(ValidationError):
    pass


class PersistenceError(AppError):
    """Store read/write failure."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key
