"""
Service Errors

Every error a component raises carries the HTTP status the boundary should
answer with and a message that is safe to show to the client.
"""


class ServiceError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    message = "Invalid request"


class MissingField(ValidationError):
    def __init__(self, *fields: str):
        self.fields = fields
        names = " and ".join(f.capitalize() if i == 0 else f for i, f in enumerate(fields))
        super().__init__(f"{names} {'are' if len(fields) > 1 else 'is'} required")


class UnknownEmail(ValidationError):
    message = "Invalid Email"


class WrongPassword(ValidationError):
    message = "Invalid Password"


class ConflictError(ServiceError):
    status_code = 400
    message = "Conflict"


class DuplicateEmail(ConflictError):
    message = "This user already exists"


class AlreadyLiked(ConflictError):
    message = "You have already liked this guideline"


class NotFoundError(ServiceError):
    status_code = 404
    message = "Not found"


class AuthorizationError(ServiceError):
    status_code = 403
    message = "Forbidden"


class NotAuthorized(AuthorizationError):
    message = "Only moderators can post guidelines"


class AuthenticationError(ServiceError):
    status_code = 401
    message = "Could not validate credentials"


class InvalidToken(AuthenticationError):
    pass


class DependencyError(ServiceError):
    status_code = 500
    message = "Internal Server Error"
