from __future__ import annotations

import errno
import hashlib
from os import PathLike
from pathlib import Path
from typing import override

import aiofiles
from loguru import logger

from ..common.errors import ImageIOError
from .output_writer import OutputWriter, SavedOutput

_ERRNO_MESSAGES: dict[int, str] = {
    errno.EACCES: "Permission denied. Cannot write to selected location.",
    errno.EPERM: "Permission denied. Cannot write to selected location.",
    errno.ENOSPC: "Not enough disk space to save file.",
    errno.EBUSY: "File is locked by another program.",
}


def describe_write_error(exc: OSError) -> str:
    """User-facing message for a failed write."""
    if exc.errno is not None and exc.errno in _ERRNO_MESSAGES:
        return _ERRNO_MESSAGES[exc.errno]
    return f"Failed to write file: {exc.strerror or exc}"


class LocalOutputWriter(OutputWriter):
    """Local filesystem implementation of OutputWriter."""

    def __init__(self, *, mkdirs: bool = False):
        self._mkdirs: bool = mkdirs

    @override
    async def write(self, path: str | PathLike[str], data: bytes) -> SavedOutput:
        dst = Path(path).expanduser().resolve()

        try:
            if self._mkdirs:
                dst.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(dst, "wb") as f:
                _ = await f.write(data)
            size = dst.stat().st_size
        except OSError as exc:
            message = describe_write_error(exc)
            logger.error(f"Write to {dst} failed: {message}")
            raise ImageIOError(message) from exc

        if size == 0:
            raise ImageIOError("File was created but is empty")

        logger.info(f"Saved {size} bytes to {dst}")
        return SavedOutput(
            path=str(dst),
            size=size,
            hash=hashlib.sha256(data).hexdigest(),
        )
