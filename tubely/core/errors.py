"""
Error taxonomy shared by the upload pipeline and the HTTP layer.

Every error carries the HTTP status it maps to; ``main.py`` turns any
``TubelyError`` into a JSON ``{"detail": ...}`` response with that status.
"""
from fastapi import status


class TubelyError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---- 4xx ----

class ValidationError(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST

class UnsupportedMediaType(ValidationError):
    pass

class PayloadTooLarge(ValidationError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

class AuthError(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED

class InvalidToken(AuthError):
    pass

class Unauthorized(AuthError):
    pass

class NotFound(TubelyError):
    status_code = status.HTTP_404_NOT_FOUND


# ---- 5xx ----

class ToolError(TubelyError):
    """An external media tool (ffprobe/ffmpeg) failed."""

class ProbeFailure(ToolError):
    pass

class RemuxFailure(ToolError):
    pass

class StorageError(TubelyError):
    """Object storage transfer failed."""

class PersistenceError(TubelyError):
    """Metadata store update failed."""
