# storefront/domain/errors.py

FAIL = "fail"
ERROR = "error"


class AppError(Exception):
    """Domain error carrying the HTTP status code and response status flag."""

    status_code = 500
    status_text = ERROR

    def __init__(self, message: str, status_code: int | None = None, status_text: str | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if status_text is not None:
            self.status_text = status_text


class InvalidInputError(AppError):
    status_code = 400
    status_text = FAIL


class InvalidStateError(AppError):
    status_code = 400
    status_text = FAIL


class ForbiddenError(AppError):
    status_code = 403
    status_text = FAIL


class NotFoundError(AppError):
    status_code = 404
    status_text = FAIL


class ConflictError(AppError):
    status_code = 409
    status_text = FAIL


class InternalError(AppError):
    status_code = 500
    status_text = ERROR
