"""Image codecs: decoder capabilities, the encode dispatcher and the BMP writer."""

from .bmp import encode_bmp, read_bmp_header, row_stride
from .decoders import (
    Decoder,
    DecoderSet,
    HeifDecoder,
    NativeAvifDecoder,
    PillowRasterDecoder,
    TiffDecoder,
)
from .encoders import encode, encode_sync, load_pixels, resolve_target

__all__ = [
    "Decoder",
    "DecoderSet",
    "HeifDecoder",
    "NativeAvifDecoder",
    "PillowRasterDecoder",
    "TiffDecoder",
    "encode",
    "encode_bmp",
    "encode_sync",
    "load_pixels",
    "read_bmp_header",
    "resolve_target",
    "row_stride",
]
