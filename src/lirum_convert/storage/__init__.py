"""Storage module - persistence of converted output."""

from .local_writer import LocalOutputWriter, describe_write_error
from .output_writer import OutputWriter, SavedOutput

__all__ = ["LocalOutputWriter", "OutputWriter", "SavedOutput", "describe_write_error"]
