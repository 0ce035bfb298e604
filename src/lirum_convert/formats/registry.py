"""Output format registry, token normalization and save-dialog filters."""

import math
import re
from collections.abc import Mapping
from pathlib import PurePath
from types import MappingProxyType
from typing import ClassVar, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.settings import DEFAULT_QUALITY


class FormatDescriptor(BaseModel):
    """Static description of one output format.

    Attributes:
        key: Canonical lowercase key (``jpeg``, not ``jpg``)
        label: Human label shown in save dialogs
        extensions: Valid extensions, canonical one first
        supports_quality: Whether a quality value is applied when encoding
        supports_alpha: Whether the encoded file keeps transparency
        mime_type: MIME type used in data URLs and HTTP responses
        pil_format: Pillow save format name
    """

    key: str
    label: str
    extensions: tuple[str, ...] = Field(min_length=1)
    supports_quality: bool
    supports_alpha: bool
    mime_type: str
    pil_format: str

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(not ext or ext != ext.lower() or ext.startswith(".") for ext in v):
            raise ValueError("Extensions must be lowercase and without a leading dot")
        return v

    @property
    def extension(self) -> str:
        return self.extensions[0]


# Canonical order used for save filters and the "All Images" group
CANONICAL_ORDER: Final[tuple[str, ...]] = (
    "jpeg",
    "png",
    "webp",
    "avif",
    "heic",
    "gif",
    "bmp",
    "tiff",
)

OUTPUT_FORMATS: Final[Mapping[str, FormatDescriptor]] = MappingProxyType(
    {
        "jpeg": FormatDescriptor(
            key="jpeg",
            label="JPEG Image",
            extensions=("jpg", "jpeg"),
            supports_quality=True,
            supports_alpha=False,
            mime_type="image/jpeg",
            pil_format="JPEG",
        ),
        "png": FormatDescriptor(
            key="png",
            label="PNG Image",
            extensions=("png",),
            supports_quality=False,
            supports_alpha=True,
            mime_type="image/png",
            pil_format="PNG",
        ),
        "webp": FormatDescriptor(
            key="webp",
            label="WebP Image",
            extensions=("webp",),
            supports_quality=True,
            supports_alpha=True,
            mime_type="image/webp",
            pil_format="WEBP",
        ),
        "avif": FormatDescriptor(
            key="avif",
            label="AVIF Image",
            extensions=("avif",),
            supports_quality=True,
            supports_alpha=True,
            mime_type="image/avif",
            pil_format="AVIF",
        ),
        "heic": FormatDescriptor(
            key="heic",
            label="HEIC Image",
            extensions=("heic", "heif"),
            supports_quality=True,
            supports_alpha=True,
            mime_type="image/heic",
            # Written by pillow-heif, which compresses with HEVC
            pil_format="HEIF",
        ),
        "gif": FormatDescriptor(
            key="gif",
            label="GIF Image",
            extensions=("gif",),
            supports_quality=False,
            supports_alpha=True,
            mime_type="image/gif",
            pil_format="GIF",
        ),
        "bmp": FormatDescriptor(
            key="bmp",
            label="BMP Image",
            extensions=("bmp",),
            supports_quality=False,
            supports_alpha=False,
            mime_type="image/bmp",
            pil_format="BMP",
        ),
        "tiff": FormatDescriptor(
            key="tiff",
            label="TIFF Image",
            extensions=("tif", "tiff"),
            supports_quality=False,
            supports_alpha=True,
            mime_type="image/tiff",
            pil_format="TIFF",
        ),
    }
)

_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {"jpg": "jpeg", "heif": "heic", "tif": "tiff"}
)

# Extra MIME spellings seen from browsers and libmagic
_MIME_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "image/jpg": "jpeg",
        "image/pjpeg": "jpeg",
        "image/heif": "heic",
        "image/heic-sequence": "heic",
        "image/heif-sequence": "heic",
        "image/x-ms-bmp": "bmp",
        "image/x-bmp": "bmp",
        "image/tif": "tiff",
    }
)


class SaveFilter(BaseModel):
    """One (label, extensions) group of a save dialog."""

    name: str
    extensions: list[str]


def normalize_format(token: object) -> str | None:
    """Map a user- or extension-supplied token to a canonical format key.

    Case-insensitive; ``jpg``, ``heif`` and ``tif`` are aliases. Returns None
    for None, empty or unrecognized tokens.
    """
    if token is None or not isinstance(token, str):
        return None
    value = token.strip().lower().lstrip(".")
    if not value:
        return None
    value = _ALIASES.get(value, value)
    return value if value in OUTPUT_FORMATS else None


_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_EXT_SUFFIX = re.compile(r"\.[^/.]+$")


def normalize_quality(value: object) -> int | None:
    """Parse a quality value as an integer and clamp it into [1, 100].

    Numeric strings are parsed by their leading integer (``"85.5"`` -> 85);
    floats are truncated. Non-numeric input yields None.
    """
    parsed: int
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        parsed = int(value)
    elif isinstance(value, str):
        match = _INT_PREFIX.match(value)
        if not match:
            return None
        parsed = int(match.group(1))
    else:
        return None
    return min(100, max(1, parsed))


def get_format(token: object) -> FormatDescriptor | None:
    key = normalize_format(token)
    return OUTPUT_FORMATS[key] if key else None


def find_by_mime(mime: str | None) -> FormatDescriptor | None:
    """Look up the output format registered for a MIME type."""
    if not mime:
        return None
    value = mime.split(";", 1)[0].strip().lower()
    for descriptor in OUTPUT_FORMATS.values():
        if descriptor.mime_type == value:
            return descriptor
    key = _MIME_ALIASES.get(value)
    return OUTPUT_FORMATS[key] if key else None


def format_from_name(name: str | None) -> str | None:
    """Infer a canonical format key from a file name's extension."""
    if not name:
        return None
    return normalize_format(PurePath(name).suffix)


def resolve_quality(
    descriptor: FormatDescriptor,
    quality: object = None,
    default: int = DEFAULT_QUALITY,
) -> int | None:
    """Quality to apply for ``descriptor``: the normalized value or the default.

    Formats without quality support always get None.
    """
    if not descriptor.supports_quality:
        return None
    normalized = normalize_quality(quality)
    return normalized if normalized is not None else default


def build_output_filters(target_format: object = None) -> list[SaveFilter]:
    """Ordered save-dialog filter groups.

    The requested format's group comes first (if it is known), then every
    other format in canonical order, then an "All Images" group spanning all
    extensions.
    """
    filters: list[SaveFilter] = []
    key = normalize_format(target_format)

    if key:
        descriptor = OUTPUT_FORMATS[key]
        filters.append(SaveFilter(name=descriptor.label, extensions=list(descriptor.extensions)))

    for other in CANONICAL_ORDER:
        if other == key:
            continue
        descriptor = OUTPUT_FORMATS[other]
        filters.append(SaveFilter(name=descriptor.label, extensions=list(descriptor.extensions)))

    filters.append(
        SaveFilter(
            name="All Images",
            extensions=[ext for k in CANONICAL_ORDER for ext in OUTPUT_FORMATS[k].extensions],
        )
    )
    return filters


def resolve_output_name(suggested_name: str | None, format_key: str | None) -> str:
    """Default output file name for a conversion.

    Without a name, ``converted_image.<ext>`` is used. A name whose extension
    does not belong to the target format gets the canonical one instead.
    """
    descriptor = OUTPUT_FORMATS.get(format_key) if format_key else None

    if not suggested_name:
        return f"converted_image.{descriptor.extension if descriptor else 'jpg'}"

    if descriptor is None:
        return suggested_name

    current_ext = PurePath(suggested_name).suffix.lower().lstrip(".")
    if current_ext in descriptor.extensions:
        return suggested_name
    return _EXT_SUFFIX.sub("", suggested_name) + f".{descriptor.extension}"


def ensure_extension(path: str, extension: str) -> str:
    """Append ``.extension`` only when ``path`` has no extension at all."""
    if PurePath(path).suffix:
        return path
    return f"{path}.{extension}"
