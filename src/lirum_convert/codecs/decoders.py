"""Decoder capabilities.

Each decoder turns encoded bytes into a PixelBuffer or raises a
ConversionError. They are stateless and injected into the decode dispatcher,
which treats a missing decoder as DecoderUnavailable.
"""

import logging
from io import BytesIO
from os import PathLike
from pathlib import Path
from typing import ClassVar, Protocol, override, runtime_checkable

import pillow_heif
from PIL import Image, UnidentifiedImageError, features
from pydantic import BaseModel, ConfigDict, Field

from ..common.errors import (
    ConversionError,
    DecodeError,
    DecoderUnavailableError,
    ImageIOError,
    InvalidImageError,
)
from ..common.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


@runtime_checkable
class Decoder(Protocol):
    """Capability that decodes encoded image bytes."""

    @property
    def name(self) -> str: ...

    def try_decode(self, data: bytes) -> PixelBuffer:
        """Decode ``data`` into a PixelBuffer.

        Raises:
            DecodeError: The codec rejected the bytes
            InvalidImageError: Decoded dimensions are zero
            DecoderUnavailableError: The codec component is missing
        """
        ...


def _check_dimensions(width: int | None, height: int | None) -> None:
    if not width or not height or width <= 0 or height <= 0:
        raise InvalidImageError(f"Invalid image dimensions: {width}x{height}")


def _open_with_pillow(data: bytes, formats: list[str] | None, label: str) -> PixelBuffer:
    try:
        with Image.open(BytesIO(data), formats=formats) as img:
            img.load()
            _check_dimensions(img.width, img.height)
            return PixelBuffer.from_image(img)
    except ConversionError:
        raise
    except UnidentifiedImageError as exc:
        raise DecodeError(
            f"{label} decode failed: the file may be corrupted or unsupported"
        ) from exc
    except Exception as exc:
        raise DecodeError(f"{label} decode failed: {exc}") from exc


class PillowRasterDecoder(Decoder):
    """Built-in raster decoder (JPEG, PNG, WebP, GIF, BMP, TIFF, ...).

    Only the first frame of animated sources is used.
    """

    @property
    @override
    def name(self) -> str:
        return "native"

    @override
    def try_decode(self, data: bytes) -> PixelBuffer:
        return _open_with_pillow(data, None, "Image")


class HeifDecoder(Decoder):
    """libheif-based decoder for HEIC/HEIF (and AVIF where libheif supports it).

    The container may hold several images; only the first is used.
    """

    @property
    @override
    def name(self) -> str:
        return "libheif"

    @override
    def try_decode(self, data: bytes) -> PixelBuffer:
        try:
            heif_file = pillow_heif.open_heif(BytesIO(data), convert_hdr_to_8bit=True)
        except Exception as exc:
            raise DecodeError(f"Decode error: {exc}") from exc

        if len(heif_file) == 0:
            raise DecodeError("Failed to decode image: no images found in file")

        try:
            image = heif_file[0]
            width, height = image.size
            _check_dimensions(width, height)
            pil_image = Image.frombytes(
                image.mode,
                image.size,
                image.data,
                "raw",
                image.mode,
                image.stride,
            )
        except ConversionError:
            raise
        except Exception as exc:
            raise DecodeError(f"Decode error: {exc}") from exc

        logger.debug("libheif decoded %dx%d (%d image(s) in file)", width, height, len(heif_file))
        return PixelBuffer.from_image(pil_image)


class NativeAvifDecoder(Decoder):
    """Pillow's own AVIF plugin, used as the fallback after libheif."""

    @property
    @override
    def name(self) -> str:
        return "native-avif"

    @staticmethod
    def is_available() -> bool:
        return bool(features.check("avif"))

    @override
    def try_decode(self, data: bytes) -> PixelBuffer:
        if not self.is_available():
            raise DecoderUnavailableError(
                "Native AVIF decoding is not supported by this Pillow build"
            )
        return _open_with_pillow(data, ["AVIF"], "Native AVIF")


class TiffTranscode(BaseModel):
    """Lossless PNG intermediate produced from a TIFF source."""

    png: bytes = Field(repr=False)
    width: int
    height: int

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class TiffDecoder(Decoder):
    """TIFF decoder that always goes through a PNG intermediate.

    TIFF pixel layouts vary per library; PNG round-trips losslessly through
    the raster path, so the intermediate is decoded like any other PNG.
    """

    def __init__(self, raster: Decoder | None = None) -> None:
        self._raster: Decoder = raster if raster is not None else PillowRasterDecoder()

    @property
    @override
    def name(self) -> str:
        return "tiff"

    def transcode(self, source: bytes | str | PathLike[str]) -> TiffTranscode:
        """Re-encode a TIFF (bytes or file path) as PNG and report its dimensions."""
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
        else:
            path = Path(source)
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise ImageIOError(f"Failed to read file: {exc}") from exc

        try:
            with Image.open(BytesIO(data), formats=["TIFF"]) as img:
                img.load()
                _check_dimensions(img.width, img.height)
                rgba = img.convert("RGBA")
                out = BytesIO()
                rgba.save(out, format="PNG")
                width, height = rgba.size
        except ConversionError:
            raise
        except Exception as exc:
            raise DecodeError(f"TIFF decode failed: {exc}") from exc

        return TiffTranscode(png=out.getvalue(), width=width, height=height)

    @override
    def try_decode(self, data: bytes) -> PixelBuffer:
        transcoded = self.transcode(data)
        buffer = self._raster.try_decode(transcoded.png)
        if buffer.size != (transcoded.width, transcoded.height):
            raise InvalidImageError(
                f"TIFF intermediate reported {transcoded.width}x{transcoded.height} "
                + f"but decoded as {buffer.width}x{buffer.height}"
            )
        return buffer


class DecoderSet:
    """Decoders available to the dispatcher. Any of them may be None."""

    def __init__(
        self,
        raster: Decoder | None = None,
        heif: Decoder | None = None,
        native_avif: Decoder | None = None,
        tiff: Decoder | None = None,
    ) -> None:
        self.raster: Decoder | None = raster
        self.heif: Decoder | None = heif
        self.native_avif: Decoder | None = native_avif
        self.tiff: Decoder | None = tiff

    @classmethod
    def default(cls) -> "DecoderSet":
        raster = PillowRasterDecoder()
        return cls(
            raster=raster,
            heif=HeifDecoder(),
            native_avif=NativeAvifDecoder(),
            tiff=TiffDecoder(raster),
        )
