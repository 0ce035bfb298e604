"""Pydantic models exchanged across the pipeline boundary."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..formats import FormatDescriptor, normalize_quality, resolve_quality
from .errors import ConversionError, ErrorCode
from .pixel_buffer import PixelBuffer
from .settings import DEFAULT_QUALITY

# ─────────────────────────────────────────────────────────────
# Conversion
# ─────────────────────────────────────────────────────────────


class ConversionRequest(BaseModel):
    """One user-initiated conversion.

    Attributes:
        data: Encoded source bytes
        target_format: Format token; None means "save as-is"
        quality: Clamped into [1, 100]; non-numeric tokens become None
        suggested_name: Output name proposed by the UI
    """

    data: bytes = Field(repr=False)
    target_format: str | None = None
    quality: int | None = None
    suggested_name: str | None = None

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @field_validator("quality", mode="before")
    @classmethod
    def clamp_quality(cls, v: object) -> int | None:
        return normalize_quality(v)

    def effective_quality(
        self,
        descriptor: FormatDescriptor,
        default: int = DEFAULT_QUALITY,
    ) -> int | None:
        """Quality to encode with, or None when the format takes no quality."""
        return resolve_quality(descriptor, self.quality, default)


class ConversionResult(BaseModel):
    """Outcome of one conversion attempt.

    ``output`` carries the encoded bytes and is left out of JSON dumps;
    ``path`` is only filled in by the persistence collaborator.
    """

    success: bool
    output: bytes | None = Field(default=None, exclude=True, repr=False)
    size: int | None = None
    resolved_format: str | None = None
    output_name: str | None = None
    path: str | None = None
    cancelled: bool = False
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failure(cls, exc: ConversionError) -> "ConversionResult":
        return cls(success=False, error=exc.message, error_code=exc.code)


# ─────────────────────────────────────────────────────────────
# Decoding
# ─────────────────────────────────────────────────────────────


class DecodeOutcome(BaseModel):
    """A decoded PixelBuffer with its dimensions, or the failure cause."""

    buffer: PixelBuffer | None = Field(default=None, repr=False)
    width: int | None = None
    height: int | None = None
    error: str | None = None
    error_code: ErrorCode | None = None

    @property
    def ok(self) -> bool:
        return self.buffer is not None

    @classmethod
    def success(cls, buffer: PixelBuffer) -> "DecodeOutcome":
        return cls(buffer=buffer, width=buffer.width, height=buffer.height)

    @classmethod
    def failure(cls, exc: ConversionError) -> "DecodeOutcome":
        return cls(error=exc.message, error_code=exc.code)


class DecodeResult(BaseModel):
    """Boundary shape of decode_image: a PNG preview data URL plus dimensions."""

    success: bool
    data_url: str | None = Field(default=None, repr=False)
    width: int | None = None
    height: int | None = None
    source_kind: str | None = None
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failure(cls, exc: ConversionError) -> "DecodeResult":
        return cls(success=False, error=exc.message, error_code=exc.code)
