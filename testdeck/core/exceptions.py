class TestDeckError(Exception):
    """Base class for domain errors raised by the service layer"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TestDeckError):
    """Referenced entity does not exist"""


class AuthenticationError(TestDeckError):
    """Acting user could not be resolved"""


class CsvParseError(TestDeckError):
    """Pasted or uploaded text produced no usable rows"""


class ImportValidationError(TestDeckError):
    """Column mapping or row grouping cannot produce any case"""


class ImportStateError(TestDeckError):
    """Import session operation is not allowed in the current state"""


class PersistenceError(TestDeckError):
    """Backend failure while reading or writing records"""


class ConflictError(TestDeckError):
    """Record collides with an existing one"""
