class ServiceError(Exception):
    """Base for errors raised by services; the message is shown to the user as-is."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class NotFoundError(ServiceError):
    status_code = 404

class ConflictError(ServiceError):
    status_code = 409

class PermissionDeniedError(ServiceError):
    status_code = 403

class AuthenticationError(ServiceError):
    status_code = 401

class ValidationError(ServiceError):
    status_code = 422
