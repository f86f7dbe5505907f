"""Error types raised by the Talk2Me audio pipeline and conversation layer."""


class Talk2MeError(Exception):
    """Base class for all Talk2Me errors."""


class DeviceAccessError(Talk2MeError):
    """Audio input device could not be opened (permission denied or no device)."""


class EncodingInvariantViolation(Talk2MeError):
    """Converted PCM sample fell outside the 16-bit range."""


class PlaybackError(Talk2MeError):
    """Audio payload could not be decoded or played."""


class RemoteCallError(Talk2MeError):
    """Request to the completion API failed or returned an unusable response."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status
