"""Error taxonomy for the decode/encode pipeline.

Every component converts low-level failures (Pillow, pillow-heif, OSError,
base64) into one of these kinds at its boundary. The service layer turns them
into structured results; they never cross into the caller as raw exceptions.
"""

from enum import StrEnum
from typing import ClassVar, override


class ErrorCode(StrEnum):
    IO_ERROR = "IOError"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    INVALID_IMAGE = "InvalidImage"
    DECODE_ERROR = "DecodeError"
    DECODER_UNAVAILABLE = "DecoderUnavailable"
    MALFORMED_DATA_URL = "MalformedDataUrl"
    SIZE_EXCEEDED = "SizeExceeded"
    MISSING_FORMAT = "MissingFormat"
    MISSING_DATA = "MissingData"


class ConversionError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        message: Human-readable description, surfaced verbatim to the UI
        code: Error classification
    """

    code: ClassVar[ErrorCode] = ErrorCode.DECODE_ERROR

    def __init__(self, message: str):
        self.message: str = message
        super().__init__(self.message)

    @override
    def __str__(self) -> str:
        return self.message


class ImageIOError(ConversionError):
    """Source unreadable or empty, or the output could not be written."""

    code: ClassVar[ErrorCode] = ErrorCode.IO_ERROR


class UnsupportedFormatError(ConversionError):
    code: ClassVar[ErrorCode] = ErrorCode.UNSUPPORTED_FORMAT


class InvalidImageError(ConversionError):
    """Zero or missing dimensions after decode."""

    code: ClassVar[ErrorCode] = ErrorCode.INVALID_IMAGE


class DecodeError(ConversionError):
    """The underlying codec rejected the bytes.

    ``causes`` keeps the message of every decoder that was tried, so that a
    fallback chain can report all of them.
    """

    code: ClassVar[ErrorCode] = ErrorCode.DECODE_ERROR

    def __init__(self, message: str, causes: list[str] | None = None):
        self.causes: list[str] = causes if causes is not None else [message]
        super().__init__(message)


class DecoderUnavailableError(ConversionError):
    """A codec component is missing or failed to initialize."""

    code: ClassVar[ErrorCode] = ErrorCode.DECODER_UNAVAILABLE


class MalformedDataUrlError(ConversionError):
    code: ClassVar[ErrorCode] = ErrorCode.MALFORMED_DATA_URL


class SizeExceededError(ConversionError):
    code: ClassVar[ErrorCode] = ErrorCode.SIZE_EXCEEDED

    def __init__(self, size: int, limit: int, what: str = "Image"):
        self.size: int = size
        self.limit: int = limit
        super().__init__(
            f"{what} too large ({size / 1024 / 1024:.1f}MB). "
            + f"Max: {limit / 1024 / 1024:.0f}MB"
        )


class MissingFormatError(ConversionError):
    code: ClassVar[ErrorCode] = ErrorCode.MISSING_FORMAT


class MissingDataError(ConversionError):
    code: ClassVar[ErrorCode] = ErrorCode.MISSING_DATA
