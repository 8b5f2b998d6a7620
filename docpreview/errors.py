"""
Error taxonomy for the preview workflow.
Service errors abort the operation and are shown to the user; parse problems are
never raised (the extractor degrades to its next stage instead).
"""


class ServiceError(Exception):
    """
    The generation service could not be reached or answered with a failure.
    message: text safe to show the user. detail: what the server or transport said, raw.
    server_message: the error text from a structured (JSON) error body, if the server sent one.
    """

    default_message = "The generation service request failed."
    # Show the server-supplied text to the user instead of default_message when there is one.
    surface_server_message = False

    def __init__(
        self,
        message: str | None = None,
        detail: str | None = None,
        status_code: int | None = None,
        server_message: str | None = None,
    ):
        self.message = (message or "").strip() or self.default_message
        self.detail = detail
        self.status_code = status_code
        self.server_message = server_message
        super().__init__(self.message)

    @classmethod
    def wrap(cls, err: "ServiceError") -> "ServiceError":
        """Re-raise a client ServiceError as this operation's subclass."""
        message = err.server_message if cls.surface_server_message else None
        return cls(message=message, detail=err.detail, status_code=err.status_code,
                   server_message=err.server_message)


class ExtractionServiceError(ServiceError):
    default_message = "Failed to extract details. Please try again."
    surface_server_message = True


class RefinementServiceError(ServiceError):
    default_message = "Failed to refine document. Please try again."


class VerificationRequiredError(Exception):
    """Export was attempted while the document details are unverified."""

    def __init__(self, message: str = "Please verify the document details to enable download."):
        super().__init__(message)


class ImmutableDetailError(ValueError):
    """Raised when a user edit targets a detail that cannot be changed (Document Type)."""


class ExportError(RuntimeError):
    """File conversion for download failed."""
