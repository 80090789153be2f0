"""Exception taxonomy for fragment reassembly.

Every failure carries the context needed to diagnose a bad fragment set
without re-running: the file involved and, where it applies, the mip level,
cube face and the expected/available byte counts.
"""

from typing import Optional


class TexStitchError(RuntimeError):
    """Base class for all reassembly failures."""

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TruncatedHeaderError(TexStitchError):
    """Raised when a buffer is too short to hold the 128-byte DDS header."""

    def __init__(self, available: int, *, path: Optional[str] = None):
        where = f" in {path}" if path else ""
        super().__init__(
            f"DDS header truncated{where}: need 128 bytes, got {available}",
            path=path,
        )
        self.expected = 128
        self.available = available


class TruncatedExtendedHeaderError(TexStitchError):
    """Raised when FourCC says DX10 but the 20-byte extension is missing."""

    def __init__(self, available: int, *, path: Optional[str] = None):
        where = f" in {path}" if path else ""
        super().__init__(
            f"DX10 extended header truncated{where}: need 20 bytes after the "
            f"main header, got {available}",
            path=path,
        )
        self.expected = 20
        self.available = available


class UnsupportedFormatError(TexStitchError):
    """Raised when a FourCC/DXGI identifier is missing from the size tables."""

    def __init__(self, fmt, *, path: Optional[str] = None):
        super().__init__(f"Unsupported texture format: {fmt}", path=path)
        self.format = fmt


class NoHeaderFileFoundError(TexStitchError):
    """Raised when a base name resolves to no usable header fragment."""

    def __init__(self, directory: str, base_name: str):
        super().__init__(
            f"No header file found for '{base_name}' in {directory}",
            path=directory,
        )
        self.base_name = base_name


class MissingMipFragmentError(TexStitchError):
    """Raised when a listed (or expected) mip fragment cannot be read."""

    def __init__(self, path: str, *, level: Optional[int] = None,
                 reason: str = ""):
        detail = f" (mip level {level})" if level is not None else ""
        suffix = f": {reason}" if reason else ""
        super().__init__(f"Mip fragment missing{detail}: {path}{suffix}", path=path)
        self.level = level


class LayoutOverrunError(TexStitchError):
    """Raised when a source holds fewer bytes than a computed mip size."""

    def __init__(self, message: str, *, path: Optional[str] = None,
                 level: Optional[int] = None, face: Optional[int] = None,
                 expected: Optional[int] = None,
                 available: Optional[int] = None):
        super().__init__(message, path=path)
        self.level = level
        self.face = face
        self.expected = expected
        self.available = available


class InvalidTexturePathError(TexStitchError):
    """Raised when an input path names no texture (e.g. ``missing/``)."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid texture path {path!r}: {reason}", path=path)
