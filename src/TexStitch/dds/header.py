"""Decode and encode the DDS container header and its DX10 extension.

The main header is the 4-byte ``"DDS "`` magic followed by a 124-byte
structure; when the pixel format's FourCC is ``DX10`` a 20-byte extended
header follows. Both directions are written out field by field so the byte
layout never depends on how Python lays out objects, and every field
(reserved ones included) survives a decode/encode round trip verbatim.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional, Tuple

from ..core.errors import TruncatedHeaderError, TruncatedExtendedHeaderError

logger = logging.getLogger("tex_stitch.dds.header")

DDS_MAGIC = b"DDS "
DX10_FOURCC = b"DX10"
HEADER_SIZE = 128
DX10_HEADER_SIZE = 20
RESERVED1_COUNT = 11

# size, flags, height, width, pitchOrLinearSize, depth, mipMapCount, reserved1[11]
_HEADER_HEAD = struct.Struct("<7I11I")
# size, flags, fourCC, rgbBitCount, r/g/b/a masks
_PIXEL_FORMAT = struct.Struct("<II4s5I")
# caps, caps2, caps3, caps4, reserved2
_HEADER_TAIL = struct.Struct("<5I")
_DX10 = struct.Struct("<5I")

_STRUCT_SIZE = _HEADER_HEAD.size + _PIXEL_FORMAT.size + _HEADER_TAIL.size  # 124


class PixelFormatFlags(IntFlag):
    """DDPF_* bits of ``PixelFormat.flags``."""

    ALPHAPIXELS = 0x1
    ALPHA = 0x2
    FOURCC = 0x4
    RGB = 0x40
    YUV = 0x200
    LUMINANCE = 0x20000


class Caps(IntFlag):
    """DDSCAPS_* bits of ``DDSHeader.caps``."""

    COMPLEX = 0x8
    TEXTURE = 0x1000
    MIPMAP = 0x400000


class Caps2(IntFlag):
    """DDSCAPS2_* bits of ``DDSHeader.caps2``."""

    CUBEMAP = 0x200
    CUBEMAP_POSITIVEX = 0x400
    CUBEMAP_NEGATIVEX = 0x800
    CUBEMAP_POSITIVEY = 0x1000
    CUBEMAP_NEGATIVEY = 0x2000
    CUBEMAP_POSITIVEZ = 0x4000
    CUBEMAP_NEGATIVEZ = 0x8000
    VOLUME = 0x200000


@dataclass(frozen=True)
class PixelFormat:
    """DDS_PIXELFORMAT (32 bytes)."""

    size: int = 32
    flags: int = 0
    four_cc: bytes = b"\x00\x00\x00\x00"
    rgb_bit_count: int = 0
    r_bit_mask: int = 0
    g_bit_mask: int = 0
    b_bit_mask: int = 0
    a_bit_mask: int = 0

    @property
    def has_four_cc(self) -> bool:
        return bool(self.flags & PixelFormatFlags.FOURCC)

    @property
    def four_cc_text(self) -> str:
        return self.four_cc.decode("ascii", errors="replace").rstrip("\x00")


@dataclass(frozen=True)
class DDSHeader:
    """DDS_HEADER, serialized with its magic to exactly 128 bytes."""

    size: int = 124
    flags: int = 0
    height: int = 0
    width: int = 0
    pitch_or_linear_size: int = 0
    depth: int = 0
    mip_map_count: int = 0
    reserved1: Tuple[int, ...] = (0,) * RESERVED1_COUNT
    pixel_format: PixelFormat = field(default_factory=PixelFormat)
    caps: int = 0
    caps2: int = 0
    caps3: int = 0
    caps4: int = 0
    reserved2: int = 0

    def __post_init__(self):
        if len(self.reserved1) != RESERVED1_COUNT:
            raise ValueError(
                f"reserved1 must hold {RESERVED1_COUNT} integers, got {len(self.reserved1)}"
            )
        # Lists are accepted for convenience but stored as tuples.
        object.__setattr__(self, "reserved1", tuple(self.reserved1))

    @property
    def has_dx10(self) -> bool:
        return self.pixel_format.four_cc == DX10_FOURCC

    @property
    def is_cubemap(self) -> bool:
        return bool(self.caps2 & Caps2.CUBEMAP)


@dataclass(frozen=True)
class DX10Header:
    """DDS_HEADER_DXT10 (20 bytes)."""

    dxgi_format: int = 0
    resource_dimension: int = 3  # D3D10_RESOURCE_DIMENSION_TEXTURE2D
    misc_flag: int = 0
    array_size: int = 1
    alpha_mode: int = 0


@dataclass(frozen=True)
class HeaderInfo:
    """Decoded headers plus the bytes that followed them in the source."""

    header: DDSHeader
    dx10: Optional[DX10Header]
    payload: bytes
    had_magic: bool = True

    @property
    def header_length(self) -> int:
        """Bytes the headers occupied in the source buffer."""
        length = _STRUCT_SIZE + (len(DDS_MAGIC) if self.had_magic else 0)
        if self.dx10 is not None:
            length += DX10_HEADER_SIZE
        return length

    @property
    def encoded_length(self) -> int:
        """Bytes the canonical re-encoding of the headers occupies."""
        return HEADER_SIZE + (DX10_HEADER_SIZE if self.dx10 is not None else 0)


def decode_header(data: bytes, path: Optional[str] = None) -> HeaderInfo:
    """Decode the DDS header (and DX10 extension) at the start of `data`.

    The magic is optional: some fragments start directly with the 124-byte
    structure. `path` only feeds error messages.
    """
    if len(data) < HEADER_SIZE:
        raise TruncatedHeaderError(len(data), path=path)

    view = memoryview(data)
    had_magic = bytes(view[:4]) == DDS_MAGIC
    offset = len(DDS_MAGIC) if had_magic else 0
    if not had_magic:
        logger.debug("No DDS magic in %s; reading header from offset 0", path or "<buffer>")

    head = _HEADER_HEAD.unpack_from(view, offset)
    offset += _HEADER_HEAD.size
    pf = PixelFormat(*_PIXEL_FORMAT.unpack_from(view, offset))
    offset += _PIXEL_FORMAT.size
    caps, caps2, caps3, caps4, reserved2 = _HEADER_TAIL.unpack_from(view, offset)
    offset += _HEADER_TAIL.size

    header = DDSHeader(
        size=head[0],
        flags=head[1],
        height=head[2],
        width=head[3],
        pitch_or_linear_size=head[4],
        depth=head[5],
        mip_map_count=head[6],
        reserved1=tuple(head[7:7 + RESERVED1_COUNT]),
        pixel_format=pf,
        caps=caps,
        caps2=caps2,
        caps3=caps3,
        caps4=caps4,
        reserved2=reserved2,
    )

    dx10 = None
    if header.has_dx10:
        remaining = len(data) - offset
        if remaining < DX10_HEADER_SIZE:
            raise TruncatedExtendedHeaderError(remaining, path=path)
        dx10 = DX10Header(*_DX10.unpack_from(view, offset))
        offset += DX10_HEADER_SIZE

    return HeaderInfo(
        header=header,
        dx10=dx10,
        payload=bytes(view[offset:]),
        had_magic=had_magic,
    )


def encode_header(header: DDSHeader, dx10: Optional[DX10Header] = None) -> bytes:
    """Serialize `header` (with magic) and the optional DX10 extension."""
    pf = header.pixel_format
    parts = [
        DDS_MAGIC,
        _HEADER_HEAD.pack(
            header.size,
            header.flags,
            header.height,
            header.width,
            header.pitch_or_linear_size,
            header.depth,
            header.mip_map_count,
            *header.reserved1,
        ),
        _PIXEL_FORMAT.pack(
            pf.size,
            pf.flags,
            pf.four_cc,
            pf.rgb_bit_count,
            pf.r_bit_mask,
            pf.g_bit_mask,
            pf.b_bit_mask,
            pf.a_bit_mask,
        ),
        _HEADER_TAIL.pack(
            header.caps,
            header.caps2,
            header.caps3,
            header.caps4,
            header.reserved2,
        ),
    ]
    if dx10 is not None:
        parts.append(_DX10.pack(
            dx10.dxgi_format,
            dx10.resource_dimension,
            dx10.misc_flag,
            dx10.array_size,
            dx10.alpha_mode,
        ))
    return b"".join(parts)


def read_header_file(path: str, fs) -> HeaderInfo:
    """Read a fragment through `fs` and decode its headers."""
    return decode_header(fs.read_bytes(path), path=path)
