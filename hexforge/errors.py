"""
Exceptions raised by HexForge.

User-facing editing paths never raise these; they log a message and leave
state untouched. The exceptions mark programmer errors and malformed input
from external collaborators, and are caught at the session boundary.
"""


class HexForgeError(Exception):
    """Base class for all HexForge errors."""

    pass


class InvalidTransitionError(HexForgeError):
    """Raised when switching to a tool that does not exist."""

    pass


class ContentGenerationError(HexForgeError):
    """Raised when a generated edit batch cannot be parsed or validated."""

    def __init__(self, message: str, kind: str = ""):
        super().__init__(message)
        self.kind = kind


class MapFormatError(HexForgeError):
    """Raised when a map file cannot be read or is not a JSON object."""

    pass
