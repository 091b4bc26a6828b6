class KickerError(Exception):
    """Base error; carries the HTTP status it is rendered with."""
    status_code = 500
    
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
    
    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(KickerError):
    status_code = 400


class AuthenticationError(KickerError):
    status_code = 401


class AuthorizationError(KickerError):
    status_code = 403


class NotFoundError(KickerError):
    status_code = 404


class ConflictError(KickerError):
    status_code = 409


class ConfigurationError(KickerError):
    """Backing store is unreachable or not configured."""
    status_code = 500


class UpstreamError(KickerError):
    """Store read/write failure not otherwise classified."""
    status_code = 500
