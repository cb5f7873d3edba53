class DataClientError(Exception):
    """Base class."""


class DatabaseError(DataClientError):
    """Ошибка хранилища. Хранит метку шага и исходное исключение."""

    def __init__(self, message: str, operation: str | None = None, original: BaseException | None = None):
        super().__init__(message)
        self.operation = operation
        self.original = original


class ConflictError(DatabaseError):
    pass


class NotFoundError(DataClientError):
    pass


class InvalidKeyError(DataClientError, ValueError):
    pass
