"""``data:`` URL codec used to move image bytes between preview and persistence."""

import base64
import binascii
import re

from ..codecs.encoders import encode_sync
from ..common.errors import MalformedDataUrlError, SizeExceededError, UnsupportedFormatError
from ..common.pixel_buffer import PixelBuffer
from ..common.settings import MAX_INPUT_BYTES
from ..formats import find_by_mime

_DATA_URL = re.compile(
    r"^data:(?P<mime>[^;,]+)(?P<params>(?:;[^;,]*)*?);base64,(?P<payload>.*)$",
    re.DOTALL,
)
_MIME_GROUP = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+-]*/[a-z0-9][a-z0-9!#$&^_.+-]*$")


def to_data_url(
    source: PixelBuffer | bytes,
    mime: str = "image/png",
    quality: int | None = None,
) -> str:
    """Build a ``data:<mime>;base64,<payload>`` URL.

    A PixelBuffer is first encoded into the format registered for ``mime``;
    bytes are embedded as they are and assumed to already be ``mime``.

    Raises:
        UnsupportedFormatError: If a PixelBuffer is given with an unknown MIME type
    """
    if isinstance(source, PixelBuffer):
        descriptor = find_by_mime(mime)
        if descriptor is None:
            raise UnsupportedFormatError(f"No encoder registered for MIME type: {mime}")
        payload = encode_sync(source, descriptor.key, quality)
        mime = descriptor.mime_type
    else:
        payload = bytes(source)

    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def parse_data_url(data_url: object, max_bytes: int = MAX_INPUT_BYTES) -> tuple[str, bytes]:
    """Split a data URL into its MIME type and decoded payload.

    Raises:
        MalformedDataUrlError: Wrong scheme, bad MIME group, or empty/invalid base64
        SizeExceededError: If the decoded payload would exceed ``max_bytes``
    """
    if not isinstance(data_url, str) or not data_url:
        raise MalformedDataUrlError("Invalid image data provided")

    match = _DATA_URL.match(data_url.strip())
    if not match:
        raise MalformedDataUrlError("Invalid data URL format")

    mime = match.group("mime").strip().lower()
    if not _MIME_GROUP.match(mime):
        raise MalformedDataUrlError(f"Invalid MIME type in data URL: {mime!r}")

    payload = re.sub(r"\s+", "", match.group("payload"))
    if not payload:
        raise MalformedDataUrlError("Empty image data")

    estimated = len(payload) * 3 // 4
    if estimated > max_bytes:
        raise SizeExceededError(estimated, max_bytes)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedDataUrlError(f"Invalid base64 payload: {exc}") from exc

    if not data:
        raise MalformedDataUrlError("Empty image data")
    if len(data) > max_bytes:
        raise SizeExceededError(len(data), max_bytes)

    return mime, data


def from_data_url(data_url: object, max_bytes: int = MAX_INPUT_BYTES) -> bytes:
    """Decode a data URL into raw bytes. See parse_data_url."""
    _, data = parse_data_url(data_url, max_bytes)
    return data
