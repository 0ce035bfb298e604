"""PixelBuffer - canonical in-memory image and its pure pixel operations.

All decoders terminate in a PixelBuffer; the encode stage consumes it without
mutating it. Compositing produces a new buffer.
"""

from typing import ClassVar

import numpy as np
from numpy.typing import NDArray
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import InvalidImageError

RGB = tuple[int, int, int]

WHITE: RGB = (255, 255, 255)


class PixelBuffer(BaseModel):
    """Straight (non-premultiplied) RGBA8 pixels, row-major, top row first.

    Invariant: ``len(pixels) == width * height * 4`` and both dimensions are
    positive. Violations raise InvalidImageError at construction.
    """

    width: int
    height: int
    pixels: bytes = Field(repr=False)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_geometry(self) -> "PixelBuffer":
        if self.width <= 0 or self.height <= 0:
            raise InvalidImageError(f"Invalid image dimensions: {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise InvalidImageError(
                f"Pixel data length {len(self.pixels)} does not match "
                + f"{self.width}x{self.height} RGBA ({expected} bytes)"
            )
        return self

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        """Rasterize a Pillow image into an RGBA buffer at its native size."""
        width, height = img.size
        if width <= 0 or height <= 0:
            raise InvalidImageError(f"Invalid image dimensions: {width}x{height}")
        rgba = img if img.mode == "RGBA" else img.convert("RGBA")
        return cls(width=width, height=height, pixels=rgba.tobytes())

    @classmethod
    def from_array(cls, array: NDArray[np.uint8]) -> "PixelBuffer":
        if array.ndim != 3 or array.shape[2] != 4:
            raise InvalidImageError(f"Expected an HxWx4 array, got shape {array.shape}")
        height, width = int(array.shape[0]), int(array.shape[1])
        return cls(
            width=width,
            height=height,
            pixels=np.ascontiguousarray(array, dtype=np.uint8).tobytes(),
        )

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", self.size, self.pixels)

    def as_array(self) -> NDArray[np.uint8]:
        """Read-only ``height x width x 4`` view over the pixel bytes."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, 4)

    def has_alpha(self) -> bool:
        """True if any texel is not fully opaque."""
        return bool((self.as_array()[:, :, 3] < 255).any())


def parse_color(color: RGB | str) -> RGB:
    """Accept an ``(r, g, b)`` tuple or a ``#rrggbb`` string."""
    if isinstance(color, str):
        value = color.strip().lstrip("#")
        if len(value) != 6:
            raise ValueError(f"Invalid colour: {color!r}")
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))

    r, g, b = color
    for channel in (r, g, b):
        if not 0 <= channel <= 255:
            raise ValueError(f"Colour channel out of range: {color!r}")
    return (int(r), int(g), int(b))


def composite_on_background(buffer: PixelBuffer, color: RGB | str = WHITE) -> PixelBuffer:
    """Source-over composite ``buffer`` onto a solid background.

    Per channel: ``out = src * a + bg * (1 - a)``, rounded to nearest, with
    the result fully opaque. Used before encoding to formats without alpha.
    """
    bg = np.array(parse_color(color), dtype=np.uint32)
    src = buffer.as_array().astype(np.uint32)

    alpha = src[:, :, 3:4]
    rgb = (src[:, :, :3] * alpha + bg * (255 - alpha) + 127) // 255

    out = np.empty((buffer.height, buffer.width, 4), dtype=np.uint8)
    out[:, :, :3] = rgb.astype(np.uint8)
    out[:, :, 3] = 255
    return PixelBuffer.from_array(out)
