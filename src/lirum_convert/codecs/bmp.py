"""Uncompressed 24-bit Windows bitmap writer.

Layout written:
    BITMAPFILEHEADER (14 bytes)  "BM", file size, 2x reserved, pixel offset (54)
    BITMAPINFOHEADER (40 bytes)  size, width, +height, planes=1, bpp=24, BI_RGB,
                                 image size, x/y pixels per meter, 0 colours, 0 important
    pixel rows                   bottom-up, B G R per texel, padded to 4 bytes

Alpha is dropped, not composited; callers composite first if transparency
matters. Always truecolor, uncompressed and bottom-up (positive height).
"""

import logging
import struct
from typing import Final, TypedDict

import numpy as np

from ..common.errors import InvalidImageError
from ..common.pixel_buffer import PixelBuffer
from ..common.settings import BMP_RESOLUTION_PPM

logger = logging.getLogger(__name__)

FILE_HEADER_SIZE: Final[int] = 14
INFO_HEADER_SIZE: Final[int] = 40
PIXEL_DATA_OFFSET: Final[int] = FILE_HEADER_SIZE + INFO_HEADER_SIZE
BYTES_PER_PIXEL: Final[int] = 3
BI_RGB: Final[int] = 0

_FILE_HEADER: Final[struct.Struct] = struct.Struct("<2sIHHI")
_INFO_HEADER: Final[struct.Struct] = struct.Struct("<IiiHHIIiiII")


class BmpHeader(TypedDict):
    magic: bytes
    file_size: int
    pixel_offset: int
    header_size: int
    width: int
    height: int
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    x_pixels_per_meter: int
    y_pixels_per_meter: int
    colors_used: int
    colors_important: int


def row_stride(width: int) -> int:
    """Bytes per stored scanline: ``ceil(width * 3 / 4) * 4``."""
    return (width * BYTES_PER_PIXEL + 3) // 4 * 4


def bmp_file_size(width: int, height: int) -> int:
    return PIXEL_DATA_OFFSET + row_stride(width) * height


def encode_bmp(buffer: PixelBuffer, resolution_ppm: int = BMP_RESOLUTION_PPM) -> bytes:
    """Encode an RGBA PixelBuffer as a 24-bit BMP file.

    Row ``y`` of the stored pixel data holds source scanline ``h - 1 - y``.
    Padding bytes past ``w * 3`` in each row are zero.
    """
    width, height = buffer.width, buffer.height
    stride = row_stride(width)
    image_size = stride * height
    file_size = PIXEL_DATA_OFFSET + image_size

    out = bytearray(file_size)
    _FILE_HEADER.pack_into(out, 0, b"BM", file_size, 0, 0, PIXEL_DATA_OFFSET)
    _INFO_HEADER.pack_into(
        out,
        FILE_HEADER_SIZE,
        INFO_HEADER_SIZE,
        width,
        height,
        1,
        BYTES_PER_PIXEL * 8,
        BI_RGB,
        image_size,
        resolution_ppm,
        resolution_ppm,
        0,
        0,
    )

    # Flip rows to bottom-up and reorder RGBA -> BGR in one view
    bgr = buffer.as_array()[::-1, :, 2::-1]
    rows = np.zeros((height, stride), dtype=np.uint8)
    rows[:, : width * BYTES_PER_PIXEL] = bgr.reshape(height, width * BYTES_PER_PIXEL)
    out[PIXEL_DATA_OFFSET:] = rows.tobytes()

    logger.debug("Encoded %dx%d BMP (%d bytes, stride %d)", width, height, file_size, stride)
    return bytes(out)


def read_bmp_header(data: bytes) -> BmpHeader:
    """Parse the file and info headers of a BMP written by encode_bmp.

    Raises:
        InvalidImageError: If the data is too short or lacks the ``BM`` magic
    """
    if len(data) < PIXEL_DATA_OFFSET:
        raise InvalidImageError(f"BMP data too short: {len(data)} bytes")

    magic, file_size, _, _, pixel_offset = _FILE_HEADER.unpack_from(data, 0)
    if magic != b"BM":
        raise InvalidImageError(f"Not a BMP file (magic {magic!r})")

    (
        header_size,
        width,
        height,
        planes,
        bits_per_pixel,
        compression,
        image_size,
        x_ppm,
        y_ppm,
        colors_used,
        colors_important,
    ) = _INFO_HEADER.unpack_from(data, FILE_HEADER_SIZE)

    return BmpHeader(
        magic=magic,
        file_size=file_size,
        pixel_offset=pixel_offset,
        header_size=header_size,
        width=width,
        height=height,
        planes=planes,
        bits_per_pixel=bits_per_pixel,
        compression=compression,
        image_size=image_size,
        x_pixels_per_meter=x_ppm,
        y_pixels_per_meter=y_ppm,
        colors_used=colors_used,
        colors_important=colors_important,
    )
