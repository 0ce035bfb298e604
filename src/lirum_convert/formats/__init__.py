"""Output format registry and normalization helpers."""

from .registry import (
    CANONICAL_ORDER,
    OUTPUT_FORMATS,
    FormatDescriptor,
    SaveFilter,
    build_output_filters,
    ensure_extension,
    find_by_mime,
    format_from_name,
    get_format,
    normalize_format,
    normalize_quality,
    resolve_output_name,
    resolve_quality,
)

__all__ = [
    "CANONICAL_ORDER",
    "OUTPUT_FORMATS",
    "FormatDescriptor",
    "SaveFilter",
    "build_output_filters",
    "ensure_extension",
    "find_by_mime",
    "format_from_name",
    "get_format",
    "normalize_format",
    "normalize_quality",
    "resolve_output_name",
    "resolve_quality",
]
