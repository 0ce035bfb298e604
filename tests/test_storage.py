"""Unit tests for the local output writer."""

import errno
import hashlib
from pathlib import Path

import pytest

from lirum_convert.common.errors import ImageIOError
from lirum_convert.storage import LocalOutputWriter, OutputWriter, describe_write_error
from lirum_convert.storage import local_writer

# ============================================================================
# WRITE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_write_reports_path_size_and_hash(tmp_path: Path):
    """Test the saved file metadata matches what was written."""
    writer = LocalOutputWriter()
    data = b"converted image bytes"

    saved = await writer.write(tmp_path / "out.png", data)

    assert Path(saved.path).read_bytes() == data
    assert saved.size == len(data)
    assert saved.hash == hashlib.sha256(data).hexdigest()


@pytest.mark.asyncio
async def test_write_overwrites_existing_file(tmp_path: Path):
    """Test an existing destination is replaced."""
    dst = tmp_path / "out.bmp"
    _ = dst.write_bytes(b"old content that is longer")

    _ = await LocalOutputWriter().write(dst, b"new")

    assert dst.read_bytes() == b"new"


@pytest.mark.asyncio
async def test_write_creates_parents_when_asked(tmp_path: Path):
    """Test mkdirs=True creates missing directories."""
    saved = await LocalOutputWriter(mkdirs=True).write(tmp_path / "a" / "b" / "out.gif", b"x")
    assert Path(saved.path).exists()


@pytest.mark.asyncio
async def test_write_empty_output_is_an_error(tmp_path: Path):
    """Test a zero-byte result is reported instead of silently accepted."""
    with pytest.raises(ImageIOError, match="File was created but is empty"):
        _ = await LocalOutputWriter().write(tmp_path / "out.png", b"")


@pytest.mark.asyncio
async def test_write_missing_directory(tmp_path: Path):
    """Test writing into a missing directory without mkdirs fails with IOError."""
    with pytest.raises(ImageIOError, match="Failed to write file"):
        _ = await LocalOutputWriter().write(tmp_path / "nope" / "out.png", b"x")


def test_local_writer_satisfies_protocol():
    """Test LocalOutputWriter is an OutputWriter."""
    assert isinstance(LocalOutputWriter(), OutputWriter)


# ============================================================================
# ERRNO TRANSLATION TESTS
# ============================================================================


@pytest.mark.parametrize(
    ("code", "message"),
    [
        (errno.EACCES, "Permission denied. Cannot write to selected location."),
        (errno.EPERM, "Permission denied. Cannot write to selected location."),
        (errno.ENOSPC, "Not enough disk space to save file."),
        (errno.EBUSY, "File is locked by another program."),
    ],
)
def test_describe_write_error_known_codes(code: int, message: str):
    """Test well-known errno values get their user-facing messages."""
    assert describe_write_error(OSError(code, "ignored")) == message


def test_describe_write_error_other_codes():
    """Test other OS errors are reported generically with their reason."""
    message = describe_write_error(OSError(errno.EIO, "I/O error"))
    assert message == "Failed to write file: I/O error"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("code", "message"),
    [
        (errno.EACCES, "Permission denied. Cannot write to selected location."),
        (errno.ENOSPC, "Not enough disk space to save file."),
        (errno.EBUSY, "File is locked by another program."),
    ],
)
async def test_write_translates_os_errors(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    code: int,
    message: str,
):
    """Test OS failures during the write surface as IOError with the translated message."""

    def failing_open(*args: object, **kwargs: object):
        raise OSError(code, "simulated")

    monkeypatch.setattr(local_writer.aiofiles, "open", failing_open)

    with pytest.raises(ImageIOError) as exc_info:
        _ = await LocalOutputWriter().write(tmp_path / "out.png", b"x")

    assert exc_info.value.message == message
    assert isinstance(exc_info.value.__cause__, OSError)
