"""lirum_convert - Format-aware image decode/encode pipeline."""

from .codecs import DecoderSet, encode, encode_bmp
from .common import (
    ConversionError,
    ConverterSettings,
    ErrorCode,
    PixelBuffer,
    composite_on_background,
)
from .common.schemas import ConversionRequest, ConversionResult, DecodeOutcome, DecodeResult
from .formats import OUTPUT_FORMATS, build_output_filters, normalize_format, normalize_quality
from .pipeline import DecodeDispatcher, DecodeState, read_source
from .routes import create_router
from .service import ConversionService, build_save_filters, convert, decode_image
from .storage import LocalOutputWriter, OutputWriter, SavedOutput
from .utils.data_url import from_data_url, to_data_url
from .utils.media_types import SourceKind, classify

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "ConversionRequest",
    "ConversionResult",
    "ConversionService",
    "ConverterSettings",
    "DecodeDispatcher",
    "DecodeOutcome",
    "DecodeResult",
    "DecodeState",
    "DecoderSet",
    "ErrorCode",
    "LocalOutputWriter",
    "OUTPUT_FORMATS",
    "OutputWriter",
    "PixelBuffer",
    "SavedOutput",
    "SourceKind",
    "__version__",
    "build_output_filters",
    "build_save_filters",
    "classify",
    "composite_on_background",
    "convert",
    "create_router",
    "decode_image",
    "encode",
    "encode_bmp",
    "from_data_url",
    "normalize_format",
    "normalize_quality",
    "to_data_url",
]
