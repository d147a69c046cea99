"""Gateway error taxonomy and backend error classification.

Every error a handler raises is a ``GatewayError`` subclass carrying the HTTP
status and the client-facing message; ``register_error_handlers`` turns it
into the ``{"error": message}`` envelope.

Auth failures are classified by substring matching over the backend's
human-readable error text. The rule tables below are plain data so the
mapping can be changed without touching handler code.
"""


class GatewayError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GatewayError):
    status_code = 400


class AuthError(GatewayError):
    status_code = 401


class NotFound(GatewayError):
    status_code = 404


class Conflict(GatewayError):
    status_code = 409


class InternalError(GatewayError):
    status_code = 500


class BackendError(Exception):
    """Raised by the backend client when the backend rejects an operation."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


# (substring in backend message, error class, client message)
ClassificationRule = tuple[str, type[GatewayError], str]

CREATE_USER_RULES: tuple[ClassificationRule, ...] = (
    ("duplicate", Conflict, "User already exists"),
    ("Password", ValidationError, "invalid password, minimum 6 characters"),
)

LOGIN_RULES: tuple[ClassificationRule, ...] = (
    ("Invalid login credentials", AuthError, "Invalid credentials"),
    ("Email not confirmed", AuthError, "Email not confirmed"),
)


def classify_backend_error(message: str, rules: tuple[ClassificationRule, ...]) -> GatewayError:
    """Return the error for the first rule whose substring occurs in ``message``.

    Matching is case-sensitive and ordered. Unmatched messages become an
    ``InternalError`` that relays the backend text.
    """
    for needle, error_cls, client_message in rules:
        if needle in message:
            return error_cls(client_message)
    return InternalError(message)
