"""Error types shared across services and adapters."""


class StudioError(Exception):
    """Base class for expected, user-facing failures."""


class InvalidRequestError(StudioError):
    """A precondition was not met; nothing was changed."""


class SessionNotFoundError(StudioError):
    """The requested session does not exist."""


class SessionCorruptedError(SessionNotFoundError):
    """The session metadata exists but cannot be parsed."""


class ImageGenerationError(RuntimeError):
    """The external image-generation call failed or returned no image."""
