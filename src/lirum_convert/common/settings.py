"""Converter configuration."""

import os
from typing import ClassVar, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_INPUT_BYTES: Final[int] = 100 * 1024 * 1024
DEFAULT_QUALITY: Final[int] = 90

# 2835 pixels/meter ~ 72 DPI
BMP_RESOLUTION_PPM: Final[int] = 2835


class ConverterSettings(BaseModel):
    """Tunables shared by the decode and encode stages.

    Attributes:
        max_input_bytes: Upper bound for inputs and intermediates
        default_quality: Quality used when a lossy format gets none
        background: Colour composited under transparent BMP pixels
                    (``#rrggbb``); JPEG is always flattened onto white
        bmp_resolution_ppm: Horizontal/vertical resolution written to BMP headers
    """

    max_input_bytes: int = Field(default=MAX_INPUT_BYTES, gt=0)
    default_quality: int = Field(default=DEFAULT_QUALITY, ge=1, le=100)
    background: str = Field(default="#ffffff", pattern=r"^#[0-9a-fA-F]{6}$")
    bmp_resolution_ppm: int = Field(default=BMP_RESOLUTION_PPM, ge=0)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    @field_validator("background")
    @classmethod
    def lowercase_background(cls, v: str) -> str:
        return v.lower()

    @property
    def background_rgb(self) -> tuple[int, int, int]:
        value = self.background.lstrip("#")
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))

    @classmethod
    def from_env(cls) -> "ConverterSettings":
        """Build settings, overriding defaults from ``LIRUM_*`` environment variables."""
        overrides: dict[str, object] = {}

        max_bytes = os.environ.get("LIRUM_MAX_INPUT_BYTES")
        if max_bytes:
            overrides["max_input_bytes"] = int(max_bytes)

        quality = os.environ.get("LIRUM_DEFAULT_QUALITY")
        if quality:
            overrides["default_quality"] = int(quality)

        background = os.environ.get("LIRUM_BACKGROUND")
        if background:
            overrides["background"] = background

        return cls.model_validate(overrides)
