"""Error types shared by the gateway and the workflow client."""


class ConversionError(Exception):
    """Base class for gateway-side errors."""
    pass


class ClientInputError(ConversionError):
    """Raised for bad requests; the message is shown to the caller as is."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


class ProviderError(ConversionError):
    """Raised when metadata lookup fails or returns an unexpected shape."""
    pass


class ExtractionError(ConversionError):
    """Raised when audio extraction fails or produces no output."""
    pass


class WorkflowError(Exception):
    """Base class for client-side workflow errors."""
    pass


class ValidationError(WorkflowError):
    """Raised when a URL fails the local shape check."""
    pass


class GatewayError(WorkflowError):
    """Raised for non-2xx or malformed gateway responses."""

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.message = message
        self.status = status


class NetworkError(GatewayError):
    """Raised when the gateway could not be reached at all."""
    pass
