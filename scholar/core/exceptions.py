"""Error taxonomy shared by the auth, AI and study layers.

Every error carries a user-facing ``message`` and the HTTP status the API
renders it with (see the ``ScholarError`` handler in ``main.py``).
"""


class ScholarError(Exception):
    """Base class for errors that map to a JSON ``{"message": ...}`` response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(ScholarError):
    """No AI credential available for the requested path."""
    status_code = 400
    default_message = "No AI API keys configured"


class EmptyResponseError(ScholarError):
    """The provider returned no text."""
    status_code = 502
    default_message = "Empty response from AI"


class InvalidResponseError(ScholarError):
    """The provider returned text that does not match the requested JSON shape."""
    status_code = 502
    default_message = "Invalid JSON format"


class ProviderError(ScholarError):
    """Upstream AI failure."""
    status_code = 500
    default_message = "AI error"


class NotFoundError(ScholarError):
    status_code = 400
    default_message = "User not found"


class InvalidOtpError(ScholarError):
    status_code = 400
    default_message = "Invalid or expired OTP"


class InvalidCredentialsError(ScholarError):
    status_code = 401
    default_message = "Invalid credentials"


class UnverifiedAccountError(ScholarError):
    status_code = 403
    default_message = "Please verify your email first"


class DuplicateAccountError(ScholarError):
    status_code = 409
    default_message = "User exists"


class FileProcessingError(ScholarError):
    """An uploaded file could not be turned into provider input."""
    status_code = 400
    default_message = "Unsupported file"
