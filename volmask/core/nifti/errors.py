from __future__ import annotations


class NiftiError(Exception):
    """Base exception for NIfTI volume handling failures."""


class DecodeError(NiftiError):
    """Raised when a byte stream cannot be turned into a header and voxel buffer."""

    user_message = "not a valid NIfTI file"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class NotNiftiError(DecodeError):
    """Raised when the NIfTI signature check fails."""


class TruncatedInputError(DecodeError):
    """Raised when the buffer is shorter than the header declares."""

    user_message = "the NIfTI file is truncated"


class UnsupportedDatatypeError(DecodeError):
    """Raised for datatype codes outside the supported set."""

    user_message = "the NIfTI datatype is not supported"

    def __init__(self, message: str | None = None, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class CorruptCompressionError(DecodeError):
    """Raised when a gzip stream fails to inflate."""

    user_message = "the compressed NIfTI file is corrupt"


class MalformedHeaderError(DecodeError):
    """Raised when header fields are inconsistent (e.g. a zero-sized axis)."""


class OutOfRangeError(NiftiError, ValueError):
    """Raised for axis or stroke requests the volume cannot satisfy."""
