"""Exceptions raised by the photobooth pipeline."""


class PhotoboothError(Exception):
    """Base class for every error raised by the photobooth package."""


class DeviceUnavailable(PhotoboothError):
    """The frame source could not be opened; no session was started."""


class CaptureFailed(PhotoboothError):
    """A frame could not be retrieved mid-session; the session was aborted."""


class AlreadyInProgress(PhotoboothError):
    """A capture session was requested while another one is active."""


class InvalidPhotoCount(PhotoboothError, ValueError):
    """The compositor was given the wrong number of photos."""

    def __init__(self, expected: int, got: int):
        super().__init__(f"Expected {expected} photos for the strip, got {got}")
        self.expected = expected
        self.got = got


class UnknownFilter(PhotoboothError, ValueError):
    """No filter is registered under the requested name."""


class MalformedBuffer(PhotoboothError, ValueError):
    """A raster buffer does not have the shape or dtype the pipeline expects."""


class UnsupportedFormat(PhotoboothError):
    """Uploaded bytes are not an image format the loader understands."""


class CorruptFile(PhotoboothError):
    """Uploaded bytes look like an image but could not be decoded."""


class UploadTimeout(PhotoboothError, TimeoutError):
    """Reading or decoding an upload took longer than allowed."""


class UploadFailed(PhotoboothError):
    """None of the uploaded files could be loaded."""

    def __init__(self, errors):
        self.errors = list(errors)
        details = "; ".join(f"{name}: {err}" for name, err in self.errors)
        super().__init__(f"No uploaded file could be loaded ({details})")


class OutputFailed(PhotoboothError):
    """The final strip could neither be saved nor shared."""
