"""Core utilities -- re-exports all public symbols for convenience."""

from .errors import (
    TexStitchError,
    TruncatedHeaderError,
    TruncatedExtendedHeaderError,
    UnsupportedFormatError,
    NoHeaderFileFoundError,
    MissingMipFragmentError,
    LayoutOverrunError,
    InvalidTexturePathError,
)
from .filesystem import LocalFileSystem
from .logging import setup_logging

__all__ = [
    "TexStitchError",
    "TruncatedHeaderError", "TruncatedExtendedHeaderError",
    "UnsupportedFormatError", "NoHeaderFileFoundError",
    "MissingMipFragmentError", "LayoutOverrunError", "InvalidTexturePathError",
    "LocalFileSystem",
    "setup_logging",
]
