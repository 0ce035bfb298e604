"""
OutputWriter Protocol - where converted bytes end up.

The conversion core never touches the filesystem itself; a writer owns
destination handling and reports what it wrote.
"""

from __future__ import annotations

from os import PathLike
from typing import ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class SavedOutput(BaseModel):
    """Metadata of a written output file."""

    path: str = Field(
        ...,
        description="Absolute path of the written file",
    )
    size: int = Field(
        ...,
        gt=0,
        description="File size in bytes",
    )
    hash: str | None = Field(
        None,
        description="SHA256 of the written content",
    )

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Writer Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class OutputWriter(Protocol):
    """Persists converted image bytes."""

    async def write(self, path: str | PathLike[str], data: bytes) -> SavedOutput:
        """Write ``data`` to ``path``, replacing any existing file.

        Raises:
            ImageIOError: The file could not be written, or ended up empty
        """
        ...
