from enum import StrEnum
from pathlib import PurePath

from ..common.errors import DecoderUnavailableError


class SourceKind(StrEnum):
    """Decode strategy for an input.

    Adding a format means adding a member here and one arm in the
    decode dispatcher's match.
    """

    HEIC = "heic"
    AVIF = "avif"
    TIFF = "tiff"
    NATIVE_RASTER = "native_raster"
    UNSUPPORTED = "unsupported"


HEIC_TYPES = frozenset({"image/heic", "image/heif", "image/heic-sequence", "image/heif-sequence"})
HEIC_EXTENSIONS = frozenset({"heic", "heif"})

AVIF_TYPES = frozenset({"image/avif"})
AVIF_EXTENSIONS = frozenset({"avif"})

TIFF_TYPES = frozenset({"image/tiff"})
TIFF_EXTENSIONS = frozenset({"tif", "tiff"})

RASTER_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "gif", "bmp", "tif", "tiff"})


def _extension(name: object) -> str:
    if not isinstance(name, str) or not name:
        return ""
    return PurePath(name.strip()).suffix.lower().lstrip(".")


def _mime(declared_type: object) -> str:
    if not isinstance(declared_type, str):
        return ""
    return declared_type.split(";", 1)[0].strip().lower()


def classify(name: object = None, declared_type: object = None) -> SourceKind:
    """Decide which decoder handles an input.

    Both the extension and the declared MIME type are checked because
    drag-and-drop sources sometimes omit one of them. Never raises.

    Args:
        name: File name (or path) of the input, if known
        declared_type: MIME type reported by the source, if any

    Returns:
        The SourceKind to decode with
    """
    ext = _extension(name)
    mime = _mime(declared_type)

    if mime in HEIC_TYPES or ext in HEIC_EXTENSIONS:
        return SourceKind.HEIC
    if mime in AVIF_TYPES or ext in AVIF_EXTENSIONS:
        return SourceKind.AVIF
    if mime in TIFF_TYPES or ext in TIFF_EXTENSIONS:
        return SourceKind.TIFF
    if mime.startswith("image/") or ext in RASTER_EXTENSIONS:
        return SourceKind.NATIVE_RASTER
    return SourceKind.UNSUPPORTED


def sniff_mime(data: bytes) -> str:
    """Determine a MIME type from content using libmagic.

    Used when an input arrives with neither a name nor a declared type.

    Raises:
        DecoderUnavailableError: If libmagic cannot be loaded
    """
    try:
        import magic
    except ImportError as exc:
        raise DecoderUnavailableError(
            "Content sniffing requires libmagic. Install it (e.g. apt-get install libmagic1)."
        ) from exc

    mime = magic.Magic(mime=True)
    file_type = mime.from_buffer(data)
    if not file_type:
        file_type = "application/octet-stream"
    return file_type
