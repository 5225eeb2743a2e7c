from fastapi import HTTPException, status

from testdeck.core.exceptions import (
    AuthenticationError,
    ConflictError,
    CsvParseError,
    ImportStateError,
    ImportValidationError,
    NotFoundError,
    PersistenceError,
    TestDeckError,
)

STATUS_BY_ERROR = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    CsvParseError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ImportValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ImportStateError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_502_BAD_GATEWAY,
}


def http_error(error: TestDeckError) -> HTTPException:
    """Translate a domain error into the HTTP error returned to the client"""
    status_code = STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=error.message)
