"""Encode dispatcher: PixelBuffer or encoded bytes -> target format bytes."""

import asyncio
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError, features
from pillow_heif import register_heif_opener

from ..common.errors import (
    ConversionError,
    DecodeError,
    DecoderUnavailableError,
    ImageIOError,
    MissingFormatError,
    SizeExceededError,
    UnsupportedFormatError,
)
from ..common.pixel_buffer import RGB, WHITE, PixelBuffer, composite_on_background
from ..common.settings import BMP_RESOLUTION_PPM, DEFAULT_QUALITY, MAX_INPUT_BYTES
from ..formats import FormatDescriptor, get_format, resolve_quality
from ..utils.profiling import timed
from .bmp import encode_bmp

logger = logging.getLogger(__name__)

# Lets Image.open read HEIC/HEIF sources and Image.save write HEIF
register_heif_opener()


def resolve_target(target_format: object) -> FormatDescriptor:
    """Look up the registry entry for a target token.

    Raises:
        MissingFormatError: If no format was given
        UnsupportedFormatError: If the token is not a known format
    """
    if target_format is None or (isinstance(target_format, str) and not target_format.strip()):
        raise MissingFormatError("Missing output format")
    descriptor = get_format(target_format)
    if descriptor is None:
        raise UnsupportedFormatError(f"Unsupported output format: {target_format}")
    return descriptor


def load_pixels(data: bytes, max_bytes: int = MAX_INPUT_BYTES) -> PixelBuffer:
    """Decode encoded bytes into a PixelBuffer at native resolution.

    Raises:
        SizeExceededError: If ``data`` is over ``max_bytes``
        ImageIOError: If ``data`` is empty
        DecodeError: If no codec accepts the bytes
    """
    if len(data) > max_bytes:
        raise SizeExceededError(len(data), max_bytes)
    if not data:
        raise ImageIOError("Empty image data")
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return PixelBuffer.from_image(img)
    except ConversionError:
        raise
    except UnidentifiedImageError as exc:
        raise DecodeError("Failed to decode source image: unrecognized data") from exc
    except Exception as exc:
        raise DecodeError(f"Failed to decode source image: {exc}") from exc


def _require_codec(descriptor: FormatDescriptor) -> None:
    if descriptor.key == "avif" and not features.check("avif"):
        raise DecoderUnavailableError(
            "AVIF output requires Pillow built with libavif (Pillow 11.2 or newer)"
        )
    if descriptor.key == "webp" and not features.check("webp"):
        raise DecoderUnavailableError("WebP output requires Pillow built with libwebp")


def _save_kwargs(descriptor: FormatDescriptor, quality: int | None) -> dict[str, object]:
    save_kwargs: dict[str, object] = {}

    if descriptor.key == "png":
        save_kwargs["optimize"] = True
    elif descriptor.supports_quality and quality is not None:
        save_kwargs["quality"] = quality

    return save_kwargs


@timed
def encode_sync(
    source: PixelBuffer | bytes,
    target_format: object,
    quality: object = None,
    *,
    background: RGB | str = WHITE,
    max_bytes: int = MAX_INPUT_BYTES,
    default_quality: int = DEFAULT_QUALITY,
    bmp_resolution_ppm: int = BMP_RESOLUTION_PPM,
) -> bytes:
    """Encode ``source`` into ``target_format``. Blocking; see encode().

    Args:
        source: Decoded pixels, or encoded bytes in any readable format
        target_format: Format token (``jpg``, ``heif`` and ``tif`` accepted)
        quality: Quality token, clamped to [1, 100]; ignored for lossless formats
        background: Colour composited under transparency for bmp (jpeg always uses white)
        max_bytes: Size bound for byte sources
        default_quality: Quality applied when none is given
        bmp_resolution_ppm: Resolution written into BMP headers

    Returns:
        The encoded file bytes

    Raises:
        ConversionError: See resolve_target and load_pixels; DecoderUnavailableError
                         if the codec is missing, UnsupportedFormatError if it
                         refuses the image
    """
    descriptor = resolve_target(target_format)
    effective_quality = resolve_quality(descriptor, quality, default_quality)

    buffer = source if isinstance(source, PixelBuffer) else load_pixels(source, max_bytes)

    # JPEG is always flattened onto white; only BMP honours the background
    if descriptor.key == "jpeg":
        buffer = composite_on_background(buffer, WHITE)
    elif not descriptor.supports_alpha:
        buffer = composite_on_background(buffer, background)

    if descriptor.key == "bmp":
        output = encode_bmp(buffer, bmp_resolution_ppm)
    else:
        _require_codec(descriptor)
        img = buffer.to_image()
        if descriptor.key == "jpeg":
            img = img.convert("RGB")

        out = BytesIO()
        try:
            save_kwargs = _save_kwargs(descriptor, effective_quality)
            img.save(out, format=descriptor.pil_format, **save_kwargs)
        except (KeyError, ValueError, OSError, RuntimeError) as exc:
            raise UnsupportedFormatError(f"Cannot encode {descriptor.label}: {exc}") from exc
        output = out.getvalue()

    if not output:
        raise ImageIOError(f"{descriptor.label} encoder produced no data")

    logger.debug(
        "Encoded %dx%d to %s (%d bytes, quality=%s)",
        buffer.width,
        buffer.height,
        descriptor.key,
        len(output),
        effective_quality,
    )
    return output


async def encode(
    source: PixelBuffer | bytes,
    target_format: object,
    quality: object = None,
    *,
    background: RGB | str = WHITE,
    max_bytes: int = MAX_INPUT_BYTES,
    default_quality: int = DEFAULT_QUALITY,
    bmp_resolution_ppm: int = BMP_RESOLUTION_PPM,
) -> bytes:
    """Encode in a worker thread so the event loop stays responsive.

    Argument errors (missing/unknown format, oversize bytes) are raised before
    any codec work starts.
    """
    _ = resolve_target(target_format)
    if isinstance(source, (bytes, bytearray)) and len(source) > max_bytes:
        raise SizeExceededError(len(source), max_bytes)

    return await asyncio.to_thread(
        encode_sync,
        source if isinstance(source, PixelBuffer) else bytes(source),
        target_format,
        quality,
        background=background,
        max_bytes=max_bytes,
        default_quality=default_quality,
        bmp_resolution_ppm=bmp_resolution_ppm,
    )

