"""
Custom exceptions for pixshop.

Every error raised by the library derives from PixshopError so callers (CLI,
relay, UI) can map them to exit codes, HTTP responses or status messages.
"""


class PixshopError(Exception):
    """Base exception for all pixshop errors."""

    pass


class ValidationError(PixshopError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class APIError(PixshopError):
    """Raised when a call to the relay or the image model fails."""

    def __init__(self, message: str, status_code: int = 0, response: str = "") -> None:
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw response body (if available)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class ContentBlockedError(APIError):
    """Raised when the model rejects the request itself (prompt feedback block)."""

    def __init__(self, message: str, reason: str = "", response: str = "") -> None:
        self.reason = reason
        super().__init__(message, response=response)


class GenerationRefusedError(APIError):
    """Raised when the model answers without an image."""

    def __init__(self, message: str, finish_reason: str = "", response: str = "") -> None:
        self.finish_reason = finish_reason
        super().__init__(message, response=response)


class NetworkError(PixshopError):
    """Raised when a network operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize network error.

        Args:
            message: Error message
            original_error: The underlying exception that caused this error
        """
        self.original_error = original_error
        super().__init__(message)


class CancellationError(PixshopError):
    """Raised when an operation is cancelled by the user."""

    pass


class RequestTimeoutError(PixshopError):
    """Raised when a relay or model request times out."""

    pass


class ConfigurationError(PixshopError):
    """Raised when there is a configuration problem."""

    pass


class ImageProcessingError(PixshopError):
    """Raised when an image cannot be decoded, encoded or transformed."""

    def __init__(self, message: str, image_path: str = "") -> None:
        """
        Initialize image processing error.

        Args:
            message: Error message
            image_path: Path to the image that caused the error
        """
        self.image_path = image_path
        super().__init__(message)
