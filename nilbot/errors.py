"""
Error taxonomy for nilbot.

Every error carries a ``user_message`` — the text shown in chat when the
error reaches the controller boundary. Infrastructure errors (remote service,
persistence) keep a generic user message and put the diagnostic detail in
``str(error)`` for the logs.
"""

from __future__ import annotations

GENERIC_MESSAGE = "An error occurred"


class NilbotError(Exception):
    """Base class for all nilbot errors."""

    default_user_message = GENERIC_MESSAGE

    def __init__(self, message: str = "", *, user_message: str | None = None) -> None:
        super().__init__(message or self.default_user_message)
        self.user_message = user_message or message or self.default_user_message


class IdentificationError(NilbotError):
    """No resolvable user for the incoming event."""

    default_user_message = "Could not identify user"


class NotFoundError(NilbotError):
    """No matching local entry, or the remote service returned no secret."""

    default_user_message = "Not found"


class RemoteServiceError(NilbotError):
    """Network, HTTP or decoding failure talking to the storage service."""

    def __init__(self, message: str = "", *, status_code: int | None = None) -> None:
        super().__init__(message, user_message=GENERIC_MESSAGE)
        self.status_code = status_code


class PersistenceError(NilbotError):
    """Metadata store read or write failed."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message, user_message=GENERIC_MESSAGE)


class ImageProcessingError(NilbotError):
    """Thumbnail generation failed."""

    default_user_message = "Could not process the image"


class RenderError(NilbotError):
    """A retrieved payload could not be displayed."""

    default_user_message = "Could not display the retrieved secret"
