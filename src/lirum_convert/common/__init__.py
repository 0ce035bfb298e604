"""Common module - errors, settings and the PixelBuffer type."""

from .errors import (
    ConversionError,
    DecodeError,
    DecoderUnavailableError,
    ErrorCode,
    ImageIOError,
    InvalidImageError,
    MalformedDataUrlError,
    MissingDataError,
    MissingFormatError,
    SizeExceededError,
    UnsupportedFormatError,
)
from .pixel_buffer import PixelBuffer, composite_on_background
from .settings import ConverterSettings

__all__ = [
    "ConversionError",
    "ConverterSettings",
    "DecodeError",
    "DecoderUnavailableError",
    "ErrorCode",
    "ImageIOError",
    "InvalidImageError",
    "MalformedDataUrlError",
    "MissingDataError",
    "MissingFormatError",
    "PixelBuffer",
    "SizeExceededError",
    "UnsupportedFormatError",
    "composite_on_background",
]
