"""Decode dispatcher: classified source bytes -> PixelBuffer.

Every decode runs as a DecodeAttempt that moves through
``init -> reading_bytes -> decoding -> normalizing_pixels -> done | failed``
and logs each transition.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import TYPE_CHECKING, assert_never

import aiofiles
from loguru import logger

from .codecs.decoders import Decoder, DecoderSet
from .common.errors import (
    ConversionError,
    DecodeError,
    DecoderUnavailableError,
    ImageIOError,
    SizeExceededError,
    UnsupportedFormatError,
)
from .common.pixel_buffer import PixelBuffer
from .common.schemas import DecodeOutcome
from .common.settings import MAX_INPUT_BYTES, ConverterSettings
from .utils.media_types import SourceKind, classify
from .utils.profiling import timed

if TYPE_CHECKING:
    from loguru import Logger


class DecodeState(StrEnum):
    INIT = "init"
    READING_BYTES = "reading_bytes"
    DECODING = "decoding"
    NORMALIZING_PIXELS = "normalizing_pixels"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[DecodeState, frozenset[DecodeState]] = {
    DecodeState.INIT: frozenset({DecodeState.READING_BYTES, DecodeState.FAILED}),
    DecodeState.READING_BYTES: frozenset({DecodeState.DECODING, DecodeState.FAILED}),
    DecodeState.DECODING: frozenset({DecodeState.NORMALIZING_PIXELS, DecodeState.FAILED}),
    DecodeState.NORMALIZING_PIXELS: frozenset({DecodeState.DONE, DecodeState.FAILED}),
    DecodeState.DONE: frozenset(),
    DecodeState.FAILED: frozenset(),
}


class DecodeAttempt:
    """State of a single decode. Terminal states cannot be left."""

    def __init__(self, kind: SourceKind, log: Logger | None = None) -> None:
        self.kind: SourceKind = kind
        self.state: DecodeState = DecodeState.INIT
        self.history: list[DecodeState] = [DecodeState.INIT]
        self.error: ConversionError | None = None
        self._log: Logger = (log or logger).bind(source_kind=str(kind))

    @property
    def finished(self) -> bool:
        return self.state in (DecodeState.DONE, DecodeState.FAILED)

    def advance(self, state: DecodeState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal decode transition {self.state} -> {state}")
        self._log.debug(f"Decode [{self.kind}] {self.state} -> {state}")
        self.state = state
        self.history.append(state)

    def fail(self, error: ConversionError) -> None:
        if self.finished:
            return
        self.error = error
        self._log.warning(f"Decode [{self.kind}] failed in {self.state}: {error.message}")
        self.state = DecodeState.FAILED
        self.history.append(DecodeState.FAILED)


async def read_source(
    path: str | PathLike[str],
    max_bytes: int = MAX_INPUT_BYTES,
) -> bytes:
    """Read a source file without blocking the event loop.

    Raises:
        SizeExceededError: If the file is larger than ``max_bytes``
        ImageIOError: If the file is missing, unreadable or empty
    """
    src = Path(path).expanduser()
    try:
        size = src.stat().st_size
    except OSError as exc:
        raise ImageIOError(f"Failed to read file: {exc}") from exc

    if size > max_bytes:
        raise SizeExceededError(size, max_bytes)

    try:
        async with aiofiles.open(src, "rb") as f:
            data = await f.read()
    except OSError as exc:
        raise ImageIOError(f"Failed to read file: {exc}") from exc

    if not data:
        raise ImageIOError(f"File is empty: {src.name}")
    return data


class DecodeDispatcher:
    """Routes a classified source to its decoder.

    AVIF sources get one retry: when libheif fails, Pillow's native AVIF
    plugin is tried. HEIC has no fallback.
    """

    def __init__(
        self,
        decoders: DecoderSet | None = None,
        settings: ConverterSettings | None = None,
        log: Logger | None = None,
    ) -> None:
        self._decoders: DecoderSet = decoders if decoders is not None else DecoderSet.default()
        self._settings: ConverterSettings = settings or ConverterSettings()
        self._log: Logger = log or logger

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @timed
    async def decode(
        self,
        data: bytes,
        kind: SourceKind,
        attempt: DecodeAttempt | None = None,
    ) -> PixelBuffer:
        """Decode ``data`` as ``kind``.

        Each call tracks its own DecodeAttempt. Pass a fresh one in to
        inspect the state history afterwards; the dispatcher keeps none.

        Raises:
            SizeExceededError: Input over the configured bound
            ImageIOError: Empty input
            UnsupportedFormatError: ``kind`` is unsupported
            DecoderUnavailableError: The decoder for ``kind`` is not installed
            DecodeError, InvalidImageError: The decoder rejected the bytes
            RuntimeError: ``attempt`` was already used or tracks another kind
        """
        if attempt is None:
            attempt = DecodeAttempt(kind, self._log)
        elif attempt.state is not DecodeState.INIT or attempt.kind != kind:
            raise RuntimeError(
                f"DecodeAttempt for {attempt.kind} in {attempt.state} cannot decode {kind}"
            )
        try:
            attempt.advance(DecodeState.READING_BYTES)
            if len(data) > self._settings.max_input_bytes:
                raise SizeExceededError(len(data), self._settings.max_input_bytes)
            if not data:
                raise ImageIOError("Empty image data")

            attempt.advance(DecodeState.DECODING)
            buffer = await asyncio.to_thread(self._decode_sync, bytes(data), kind)

            attempt.advance(DecodeState.NORMALIZING_PIXELS)
            if not isinstance(buffer, PixelBuffer):
                raise DecodeError(f"Decoder returned {type(buffer).__name__}, not pixels")

            attempt.advance(DecodeState.DONE)
            return buffer
        except ConversionError as exc:
            attempt.fail(exc)
            raise
        except Exception as exc:
            error = DecodeError(f"Decode error: {exc}")
            attempt.fail(error)
            raise error from exc

    async def decode_outcome(
        self,
        data: bytes,
        kind: SourceKind,
        attempt: DecodeAttempt | None = None,
    ) -> DecodeOutcome:
        """Like decode(), but failures come back as a DecodeOutcome."""
        try:
            return DecodeOutcome.success(await self.decode(data, kind, attempt))
        except ConversionError as exc:
            return DecodeOutcome.failure(exc)

    async def decode_file(
        self,
        path: str | PathLike[str],
        declared_type: str | None = None,
        attempt: DecodeAttempt | None = None,
    ) -> PixelBuffer:
        """Read ``path`` and decode it, classifying by its name and ``declared_type``."""
        data = await read_source(path, self._settings.max_input_bytes)
        return await self.decode(data, classify(Path(path).name, declared_type), attempt)

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    @staticmethod
    def _require(decoder: Decoder | None, label: str) -> Decoder:
        if decoder is None:
            raise DecoderUnavailableError(f"{label} decoder not available")
        return decoder

    def _decode_sync(self, data: bytes, kind: SourceKind) -> PixelBuffer:
        match kind:
            case SourceKind.NATIVE_RASTER:
                return self._require(self._decoders.raster, "Image").try_decode(data)
            case SourceKind.HEIC:
                return self._require(self._decoders.heif, "HEIC").try_decode(data)
            case SourceKind.AVIF:
                return self._decode_avif(data)
            case SourceKind.TIFF:
                return self._require(self._decoders.tiff, "TIFF").try_decode(data)
            case SourceKind.UNSUPPORTED:
                raise UnsupportedFormatError("Unsupported file type")
            case _:
                assert_never(kind)

    def _decode_avif(self, data: bytes) -> PixelBuffer:
        try:
            return self._require(self._decoders.heif, "AVIF").try_decode(data)
        except ConversionError as exc:
            primary_error = exc

        self._log.warning(f"libheif AVIF decode failed, trying native decoder: {primary_error}")

        fallback = self._decoders.native_avif
        if fallback is None:
            fallback_error: ConversionError = DecoderUnavailableError(
                "Native AVIF decoder not available"
            )
        else:
            try:
                buffer = fallback.try_decode(data)
                self._log.info(f"AVIF decoded by {fallback.name} fallback")
                return buffer
            except ConversionError as exc:
                fallback_error = exc

        causes = [primary_error.message, fallback_error.message]
        if isinstance(primary_error, DecoderUnavailableError) and isinstance(
            fallback_error, DecoderUnavailableError
        ):
            raise DecoderUnavailableError("No AVIF decoder available: " + "; ".join(causes))

        raise DecodeError(
            f"AVIF decode failed. libheif: {causes[0]}; native: {causes[1]}",
            causes=causes,
        ) from fallback_error
