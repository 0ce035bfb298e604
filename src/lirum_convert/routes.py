"""Image conversion route factory."""

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response

from .common.errors import ErrorCode
from .common.schemas import ConversionResult, DecodeResult
from .formats import CANONICAL_ORDER, OUTPUT_FORMATS, FormatDescriptor, SaveFilter
from .service import ConversionService

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.SIZE_EXCEEDED: 413,
    ErrorCode.UNSUPPORTED_FORMAT: 415,
}


def error_status(code: ErrorCode | None) -> int:
    """HTTP status for a failed result: 413/415 where they apply, 500 when unclassified."""
    if code is None:
        return 500
    return _STATUS_BY_CODE.get(code, 400)


def create_router(service: ConversionService | None = None) -> APIRouter:
    router = APIRouter()
    converter = service or ConversionService()

    @router.post("/decode", response_model=DecodeResult)
    async def decode_source(
        file: Annotated[UploadFile | None, File(description="Image file to decode")] = None,
        data_url: Annotated[str | None, Form(description="Image as a data URL")] = None,
    ) -> Response:
        if file is not None:
            result = await converter.decode_image(
                data=await file.read(),
                name=file.filename,
                declared_type=file.content_type,
            )
        else:
            result = await converter.decode_image(data_url=data_url)

        status = 200 if result.success else error_status(result.error_code)
        return JSONResponse(status_code=status, content=result.model_dump(mode="json"))

    @router.post("/convert")
    async def convert_upload(
        file: Annotated[UploadFile, File(description="Image file to convert")],
        format: Annotated[str | None, Form(description="Target format")] = None,
        quality: Annotated[str | None, Form(description="Output quality (1-100)")] = None,
        name: Annotated[str | None, Form(description="Suggested output file name")] = None,
    ) -> Response:
        data = await file.read()
        result: ConversionResult = await converter.convert(
            data,
            target_format=format,
            quality=quality,
            suggested_name=name or file.filename,
        )

        if not result.success or result.output is None:
            return JSONResponse(
                status_code=error_status(result.error_code),
                content=result.model_dump(mode="json"),
            )

        headers = {"Content-Disposition": f'attachment; filename="{result.output_name}"'}
        if result.resolved_format:
            headers["X-Resolved-Format"] = result.resolved_format
            media_type = OUTPUT_FORMATS[result.resolved_format].mime_type
        else:
            media_type = file.content_type or "application/octet-stream"

        return Response(content=result.output, media_type=media_type, headers=headers)

    @router.get("/formats/filters", response_model=list[SaveFilter])
    async def save_filters(
        format: Annotated[str | None, Query(description="Preferred format")] = None,
    ) -> list[SaveFilter]:
        return converter.build_save_filters(format)

    @router.get("/formats", response_model=list[FormatDescriptor])
    async def list_formats() -> list[FormatDescriptor]:
        return [OUTPUT_FORMATS[key] for key in CANONICAL_ORDER]

    _ = (decode_source, convert_upload, save_filters, list_formats)
    return router
