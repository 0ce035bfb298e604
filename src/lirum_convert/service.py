"""Core-facing boundary of the converter.

Everything here returns structured results; ConversionError and unexpected
exceptions are logged and folded into ``success=False`` results.
"""

from __future__ import annotations

import asyncio
from functools import cache
from os import PathLike
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .codecs.decoders import DecoderSet
from .codecs.encoders import encode
from .common.errors import (
    ConversionError,
    MissingDataError,
    SizeExceededError,
)
from .common.schemas import ConversionRequest, ConversionResult, DecodeResult
from .common.settings import ConverterSettings
from .formats import (
    OUTPUT_FORMATS,
    SaveFilter,
    build_output_filters,
    ensure_extension,
    format_from_name,
    normalize_format,
    resolve_output_name,
)
from .pipeline import DecodeDispatcher, read_source
from .storage import LocalOutputWriter, OutputWriter
from .utils.data_url import parse_data_url, to_data_url
from .utils.media_types import classify, sniff_mime

if TYPE_CHECKING:
    from loguru import Logger


class ConversionService:
    """Decodes sources for preview and converts them to a target format.

    Args:
        settings: Size bound, default quality and background colour
        decoders: Decoder capabilities; the full default set when None
        log: Logger collaborator; the package logger when None
        writer: Persistence collaborator used by convert_and_save
    """

    def __init__(
        self,
        settings: ConverterSettings | None = None,
        decoders: DecoderSet | None = None,
        log: Logger | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self.settings: ConverterSettings = settings or ConverterSettings()
        self._log: Logger = log or logger.bind(component="lirum_convert")
        self.dispatcher: DecodeDispatcher = DecodeDispatcher(decoders, self.settings, self._log)
        self.writer: OutputWriter = writer or LocalOutputWriter()

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    async def decode_image(
        self,
        *,
        file_path: str | PathLike[str] | None = None,
        data: bytes | None = None,
        data_url: str | None = None,
        name: str | None = None,
        declared_type: str | None = None,
    ) -> DecodeResult:
        """Decode a source into a PNG preview data URL plus its dimensions.

        The first supplied input wins, in the order file path, bytes,
        data URL. Without a name or declared type the content is sniffed.
        """
        try:
            max_bytes = self.settings.max_input_bytes

            if file_path:
                source = await read_source(file_path, max_bytes)
                name = name or Path(file_path).name
            elif data is not None:
                source = bytes(data)
            elif data_url is not None:
                mime, source = parse_data_url(data_url, max_bytes)
                declared_type = declared_type or mime
            else:
                raise MissingDataError("No image data provided")

            if not name and not declared_type and source:
                declared_type = await asyncio.to_thread(sniff_mime, source)

            kind = classify(name, declared_type)
            buffer = await self.dispatcher.decode(source, kind)
            preview = await asyncio.to_thread(to_data_url, buffer)
        except ConversionError as exc:
            self._log.warning(f"Decode failed ({exc.code}): {exc.message}")
            return DecodeResult.failure(exc)
        except Exception as exc:
            self._log.exception(f"Unexpected error while decoding: {exc}")
            return DecodeResult(success=False, error=f"Unexpected error: {exc}")

        self._log.info(f"Decoded {name or declared_type} as {kind}: {buffer.width}x{buffer.height}")
        return DecodeResult(
            success=True,
            data_url=preview,
            width=buffer.width,
            height=buffer.height,
            source_kind=kind.value,
        )

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def _resolve_format_key(self, request: ConversionRequest) -> str | None:
        return normalize_format(request.target_format) or format_from_name(request.suggested_name)

    async def _convert(self, request: ConversionRequest) -> ConversionResult:
        if not request.data:
            raise MissingDataError("No image data provided")
        if len(request.data) > self.settings.max_input_bytes:
            raise SizeExceededError(len(request.data), self.settings.max_input_bytes)

        key = self._resolve_format_key(request)
        if key is None:
            # Nothing to convert to: hand the original bytes back
            return ConversionResult(
                success=True,
                output=request.data,
                size=len(request.data),
                output_name=resolve_output_name(request.suggested_name, None),
            )

        output = await encode(
            request.data,
            key,
            request.effective_quality(OUTPUT_FORMATS[key], self.settings.default_quality),
            background=self.settings.background,
            max_bytes=self.settings.max_input_bytes,
            default_quality=self.settings.default_quality,
            bmp_resolution_ppm=self.settings.bmp_resolution_ppm,
        )
        self._log.info(f"Converted {len(request.data)} bytes to {key} ({len(output)} bytes)")
        return ConversionResult(
            success=True,
            output=output,
            size=len(output),
            resolved_format=key,
            output_name=resolve_output_name(request.suggested_name, key),
        )

    def _failure(self, exc: Exception) -> ConversionResult:
        if isinstance(exc, ConversionError):
            self._log.warning(f"Conversion failed ({exc.code}): {exc.message}")
            return ConversionResult.failure(exc)
        self._log.exception(f"Unexpected error while converting: {exc}")
        return ConversionResult(success=False, error=f"Unexpected error: {exc}")

    async def convert(
        self,
        data: bytes | None,
        target_format: str | None = None,
        quality: object = None,
        suggested_name: str | None = None,
    ) -> ConversionResult:
        """Convert encoded bytes to ``target_format``.

        The format comes from the token, else from the extension of
        ``suggested_name``; with neither, the bytes are returned as-is
        with ``resolved_format=None``.
        """
        try:
            request = ConversionRequest(
                data=data or b"",
                target_format=target_format,
                quality=quality,
                suggested_name=suggested_name,
            )
            return await self._convert(request)
        except Exception as exc:
            return self._failure(exc)

    async def convert_data_url(
        self,
        data_url: str,
        target_format: str | None = None,
        quality: object = None,
        suggested_name: str | None = None,
    ) -> ConversionResult:
        """Parse a data URL, then convert its payload. See convert()."""
        try:
            _, data = parse_data_url(data_url, self.settings.max_input_bytes)
        except Exception as exc:
            return self._failure(exc)
        return await self.convert(data, target_format, quality, suggested_name)

    async def convert_and_save(
        self,
        data: bytes | None,
        destination: str | PathLike[str],
        target_format: str | None = None,
        quality: object = None,
        writer: OutputWriter | None = None,
    ) -> ConversionResult:
        """Convert, then write the output to ``destination``.

        A destination without an extension gets the resolved format's one.
        """
        result = await self.convert(data, target_format, quality, Path(destination).name)
        if not result.success or result.output is None:
            return result

        path = str(destination)
        if result.resolved_format:
            path = ensure_extension(path, OUTPUT_FORMATS[result.resolved_format].extension)

        try:
            saved = await (writer or self.writer).write(path, result.output)
        except Exception as exc:
            return self._failure(exc)

        return result.model_copy(update={"path": saved.path, "size": saved.size})

    def build_save_filters(self, target_format: object = None) -> list[SaveFilter]:
        return build_output_filters(target_format)


# ----------------------------------------------------------------------
# Module-level wrappers over a shared, environment-configured service
# ----------------------------------------------------------------------


@cache
def default_service() -> ConversionService:
    return ConversionService(settings=ConverterSettings.from_env())


async def decode_image(
    *,
    file_path: str | PathLike[str] | None = None,
    data: bytes | None = None,
    data_url: str | None = None,
    name: str | None = None,
    declared_type: str | None = None,
) -> DecodeResult:
    return await default_service().decode_image(
        file_path=file_path,
        data=data,
        data_url=data_url,
        name=name,
        declared_type=declared_type,
    )


async def convert(
    data: bytes | None,
    target_format: str | None = None,
    quality: object = None,
    suggested_name: str | None = None,
) -> ConversionResult:
    return await default_service().convert(data, target_format, quality, suggested_name)


def build_save_filters(target_format: object = None) -> list[SaveFilter]:
    return build_output_filters(target_format)
