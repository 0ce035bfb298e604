"""Integration tests for ConversionService.

Covers decode_image input priority, conversion format resolution, the
save-as-is path, persistence, and that every failure comes back as a result.
"""

import base64
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from lirum_convert.codecs.decoders import DecoderSet
from lirum_convert.common.errors import ErrorCode, ImageIOError
from lirum_convert.common.settings import ConverterSettings
from lirum_convert.service import ConversionService
from lirum_convert.storage import SavedOutput
from lirum_convert.utils.data_url import from_data_url

pytestmark = pytest.mark.integration


# ============================================================================
# DECODE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_decode_image_from_path(service: ConversionService, source_file: Path):
    """Test a file path decodes to a PNG preview with dimensions."""
    result = await service.decode_image(file_path=source_file)

    assert result.success
    assert (result.width, result.height) == (100, 50)
    assert result.source_kind == "native_raster"
    assert result.data_url is not None and result.data_url.startswith("data:image/png;base64,")

    with Image.open(BytesIO(from_data_url(result.data_url))) as img:
        assert img.size == (100, 50)


@pytest.mark.asyncio
async def test_decode_image_path_wins_over_bytes(
    service: ConversionService, source_file: Path, tiff_bytes: bytes
):
    """Test the file path is used when bytes are supplied as well."""
    result = await service.decode_image(file_path=source_file, data=tiff_bytes)

    assert result.success
    assert (result.width, result.height) == (100, 50)


@pytest.mark.asyncio
async def test_decode_image_bytes_win_over_data_url(
    service: ConversionService, tiff_bytes: bytes, red_png: bytes
):
    """Test bytes take priority over a data URL."""
    url = "data:image/png;base64," + base64.b64encode(red_png).decode()

    result = await service.decode_image(data=tiff_bytes, data_url=url, name="scan.tif")

    assert result.success
    assert result.source_kind == "tiff"
    assert (result.width, result.height) == (64, 48)


@pytest.mark.asyncio
async def test_decode_image_from_data_url(service: ConversionService, red_png: bytes):
    """Test the data URL's MIME type is used for classification."""
    url = "data:image/png;base64," + base64.b64encode(red_png).decode()

    result = await service.decode_image(data_url=url)

    assert result.success
    assert result.source_kind == "native_raster"


@pytest.mark.asyncio
async def test_decode_image_heic(service: ConversionService, heic_bytes: bytes):
    """Test HEIC bytes decode through libheif."""
    result = await service.decode_image(data=heic_bytes, name="IMG_0001.HEIC")

    assert result.success
    assert result.source_kind == "heic"
    assert (result.width, result.height) == (100, 50)


@pytest.mark.asyncio
@pytest.mark.requires_libmagic
async def test_decode_image_sniffs_unnamed_bytes(service: ConversionService, red_png: bytes):
    """Test bytes without a name or type are classified by content."""
    result = await service.decode_image(data=red_png)

    assert result.success
    assert result.source_kind == "native_raster"


@pytest.mark.asyncio
async def test_decode_image_failures(service: ConversionService, tmp_path: Path):
    """Test decode failures are returned as results with their error codes."""
    missing = await service.decode_image()
    assert not missing.success
    assert missing.error_code == ErrorCode.MISSING_DATA

    unreadable = await service.decode_image(file_path=tmp_path / "gone.png")
    assert unreadable.error_code == ErrorCode.IO_ERROR

    unsupported = await service.decode_image(data=b"hello", name="notes.txt")
    assert unsupported.error_code == ErrorCode.UNSUPPORTED_FORMAT

    corrupt = await service.decode_image(data=b"not a png", name="broken.png")
    assert corrupt.error_code == ErrorCode.DECODE_ERROR

    malformed = await service.decode_image(data_url="data:nonsense")
    assert malformed.error_code == ErrorCode.MALFORMED_DATA_URL


@pytest.mark.asyncio
async def test_decode_image_missing_decoder(red_png: bytes):
    """Test an absent decoder capability surfaces as DecoderUnavailable."""
    service = ConversionService(decoders=DecoderSet())

    result = await service.decode_image(data=red_png, name="a.png")

    assert result.error_code == ErrorCode.DECODER_UNAVAILABLE


@pytest.mark.asyncio
async def test_decode_image_size_bound(red_png: bytes):
    """Test inputs over the configured bound fail with SizeExceeded."""
    service = ConversionService(settings=ConverterSettings(max_input_bytes=len(red_png) - 1))

    result = await service.decode_image(data=red_png, name="a.png")

    assert result.error_code == ErrorCode.SIZE_EXCEEDED
    assert result.error is not None and result.error.startswith("Image too large")


@pytest.mark.asyncio
async def test_default_bound_rejects_over_100_mib():
    """Test default settings reject 101 MiB inputs on both decode and convert."""
    service = ConversionService()
    oversized = bytes(101 * 1024 * 1024)

    decoded = await service.decode_image(data=oversized, name="a.png")
    converted = await service.convert(oversized, "png")

    assert decoded.error_code == ErrorCode.SIZE_EXCEEDED
    assert decoded.error == "Image too large (101.0MB). Max: 100MB"
    assert converted.error_code == ErrorCode.SIZE_EXCEEDED
    assert converted.output is None



# ============================================================================
# CONVERT TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_convert_to_token_format(service: ConversionService, red_png: bytes):
    """Test conversion to an explicit format token."""
    result = await service.convert(red_png, "jpg", 80, "photo.png")

    assert result.success
    assert result.resolved_format == "jpeg"
    assert result.output_name == "photo.jpg"
    assert result.output is not None and result.output[:3] == b"\xff\xd8\xff"
    assert result.size == len(result.output)
    assert result.path is None


@pytest.mark.asyncio
async def test_convert_infers_format_from_name(service: ConversionService, red_png: bytes):
    """Test the suggested name's extension picks the format when no token is given."""
    result = await service.convert(red_png, None, None, "out.bmp")

    assert result.resolved_format == "bmp"
    assert result.size == 15054


@pytest.mark.asyncio
async def test_convert_save_as_is(service: ConversionService, red_png: bytes):
    """Test no token and no inferable extension returns the original bytes."""
    result = await service.convert(red_png, "", None, "export")

    assert result.success
    assert result.resolved_format is None
    assert result.output == red_png
    assert result.output_name == "export"


@pytest.mark.asyncio
async def test_convert_unknown_token_falls_back_to_name(
    service: ConversionService, red_png: bytes
):
    """Test an unrecognized token is ignored in favour of the suggested name's extension."""
    result = await service.convert(red_png, "svg", None, "out.png")

    assert result.success
    assert result.resolved_format == "png"
    assert result.output_name == "out.png"
    assert result.output is not None
    assert result.output.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_convert_unknown_token_without_name_saves_as_is(
    service: ConversionService, red_png: bytes
):
    """Test an unrecognized token with no inferable name returns the original bytes."""
    result = await service.convert(red_png, "svg", None, "export")

    assert result.success
    assert result.resolved_format is None
    assert result.output == red_png



@pytest.mark.asyncio
async def test_convert_failures(service: ConversionService):
    """Test missing and undecodable data come back as results."""
    missing = await service.convert(None, "png")
    assert missing.error_code == ErrorCode.MISSING_DATA

    corrupt = await service.convert(b"garbage", "png")
    assert corrupt.error_code == ErrorCode.DECODE_ERROR


@pytest.mark.asyncio
async def test_convert_result_dump_excludes_output(service: ConversionService, red_png: bytes):
    """Test the encoded bytes stay out of JSON dumps."""
    result = await service.convert(red_png, "png")
    assert "output" not in result.model_dump()


@pytest.mark.asyncio
async def test_convert_data_url(service: ConversionService, red_png: bytes):
    """Test a data URL payload converts like raw bytes."""
    url = "data:image/png;base64," + base64.b64encode(red_png).decode()

    result = await service.convert_data_url(url, "tiff")
    assert result.resolved_format == "tiff"

    bad = await service.convert_data_url("data:image/png;base64,***", "tiff")
    assert bad.error_code == ErrorCode.MALFORMED_DATA_URL


# ============================================================================
# SAVE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_convert_and_save_appends_extension(
    service: ConversionService, red_png: bytes, tmp_path: Path
):
    """Test a destination without extension gets the format's canonical one."""
    result = await service.convert_and_save(red_png, tmp_path / "export", "webp", 70)

    assert result.success
    assert result.path == str((tmp_path / "export.webp").resolve())
    assert Path(result.path).stat().st_size == result.size


@pytest.mark.asyncio
async def test_convert_and_save_writer_failure(red_png: bytes, tmp_path: Path):
    """Test writer errors come back as an IOError result."""

    class FailingWriter:
        async def write(self, path, data) -> SavedOutput:
            raise ImageIOError("Not enough disk space to save file.")

    service = ConversionService(writer=FailingWriter())

    result = await service.convert_and_save(red_png, tmp_path / "out.png")

    assert not result.success
    assert result.error_code == ErrorCode.IO_ERROR
    assert result.error == "Not enough disk space to save file."


def test_build_save_filters(service: ConversionService):
    """Test the service exposes the ordered save filters."""
    filters = service.build_save_filters("heif")
    assert filters[0].name == "HEIC Image"
    assert filters[0].extensions == ["heic", "heif"]
