"""Custom exceptions for FileDeck"""


class FileDeckError(Exception):
    """Base exception for FileDeck"""

    status_code = 500


class ConfigError(FileDeckError):
    """Configuration error"""
    pass


class ValidationError(FileDeckError):
    """Malformed or missing input"""

    status_code = 400


class PathRejectedError(ValidationError):
    """Path would escape the sandbox root.

    The message is fixed so the resolved location never reaches a client.
    """

    def __init__(self, message: str = "Invalid path"):
        super().__init__(message)


class AuthError(FileDeckError):
    """Authentication error"""

    status_code = 401


class NotAuthenticatedError(AuthError):
    """No valid session on the request"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Username/password (or current password) did not match"""

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class RateLimitError(FileDeckError):
    """Rate limit exceeded error"""

    status_code = 429

    def __init__(self, message: str = "Too many attempts, try later", retry_after: int = 0):
        self.retry_after = retry_after
        super().__init__(message)


class NotFoundError(FileDeckError):
    """Requested resource is absent"""

    status_code = 404


class ConflictError(FileDeckError):
    """Target already exists"""

    status_code = 409


class FileSystemError(FileDeckError):
    """Unexpected filesystem failure. Message is generic; details go to the log."""
    pass
