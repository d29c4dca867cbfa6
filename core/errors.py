class AppError(Exception):
    """Basis für alle fachlichen Fehler, die als Antwort gerendert werden."""

    status = 400
    code = "bad_request"

    def __init__(self, message: str | None = None, fields: dict[str, str] | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.fields = dict(fields or {})


class ValidationError(AppError):
    status = 400
    code = "validation_error"


class AuthenticationFailure(AppError):
    # bewusst generisch: unbekannte E-Mail und falsches Passwort sehen gleich aus
    status = 401
    code = "invalid_credentials"

    def __init__(self, message: str = "Invalid email/password"):
        super().__init__(message)


class Forbidden(AppError):
    status = 403
    code = "forbidden"


class NotFound(AppError):
    status = 404
    code = "not_found"


class Conflict(AppError):
    status = 409
    code = "conflict"
