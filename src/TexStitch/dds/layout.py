"""Mip level sizing for block-compressed and uncompressed DDS formats."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..core.errors import UnsupportedFormatError
from .header import DDSHeader, DX10Header, HeaderInfo

logger = logging.getLogger("tex_stitch.dds.layout")

CUBEMAP_FACES = 6

# Block size (bytes per 4x4 block) for DXGI block-compressed formats.
_BLOCK_BYTES_DXGI = {
    70: 8, 71: 8, 72: 8,       # BC1 typeless/unorm/srgb
    73: 16, 74: 16, 75: 16,    # BC2
    76: 16, 77: 16, 78: 16,    # BC3
    79: 8, 80: 8, 81: 8,       # BC4 typeless/unorm/snorm
    82: 16, 83: 16, 84: 16,    # BC5
    94: 16, 95: 16, 96: 16,    # BC6H typeless/uf16/sf16
    97: 16, 98: 16, 99: 16,    # BC7
}
# Bytes per pixel for the uncompressed DXGI formats we can size.
_PIXEL_BYTES_DXGI = {
    28: 4, 29: 4,              # R8G8B8A8_UNORM(_SRGB)
    49: 2,                     # R8G8_UNORM
    56: 2,                     # R16_UNORM
    61: 1,                     # R8_UNORM
    87: 4, 91: 4,              # B8G8R8A8_UNORM(_SRGB)
}
_BLOCK_BYTES_FOURCC = {
    b"DXT1": 8,
    b"DXT2": 16,
    b"DXT3": 16,
    b"DXT4": 16,
    b"DXT5": 16,
    b"ATI1": 8,
    b"BC4U": 8,
    b"BC4S": 8,
    b"ATI2": 16,
    b"BC5U": 16,
    b"BC5S": 16,
}


@dataclass(frozen=True)
class FormatInfo:
    """How to size one mip level of a texture.

    Exactly one of `block_bytes`, `pixel_bytes` or `pixel_bits` is set.
    """

    name: str
    block_bytes: Optional[int] = None
    pixel_bytes: Optional[int] = None
    pixel_bits: Optional[int] = None

    @property
    def is_block_compressed(self) -> bool:
        return self.block_bytes is not None


@dataclass(frozen=True)
class MipLevel:
    level: int
    width: int
    height: int
    byte_size: int


def resolve_format(header: DDSHeader, dx10: Optional[DX10Header] = None) -> FormatInfo:
    """Pick the sizing rule for a texture.

    The DXGI table wins when a DX10 header is present; otherwise the legacy
    FourCC table is used when the FourCC flag is set, and the RGB bit count
    for everything else.
    """
    if dx10 is not None:
        dxgi = dx10.dxgi_format
        if dxgi in _BLOCK_BYTES_DXGI:
            return FormatInfo(f"DXGI_{dxgi}", block_bytes=_BLOCK_BYTES_DXGI[dxgi])
        if dxgi in _PIXEL_BYTES_DXGI:
            return FormatInfo(f"DXGI_{dxgi}", pixel_bytes=_PIXEL_BYTES_DXGI[dxgi])
        raise UnsupportedFormatError(f"DXGI format {dxgi}")

    pf = header.pixel_format
    if pf.has_four_cc:
        block_bytes = _BLOCK_BYTES_FOURCC.get(pf.four_cc)
        if block_bytes is None:
            raise UnsupportedFormatError(f"FourCC {pf.four_cc!r}")
        return FormatInfo(pf.four_cc_text, block_bytes=block_bytes)

    if pf.rgb_bit_count <= 0:
        raise UnsupportedFormatError(
            f"uncompressed pixel format with rgb_bit_count={pf.rgb_bit_count}"
        )
    return FormatInfo(f"RGB{pf.rgb_bit_count}", pixel_bits=pf.rgb_bit_count)


def mip_dimensions(level: int, base_width: int, base_height: int):
    """Return (width, height) of `level`, halving by right shift, floor of 1."""
    if level < 0:
        raise ValueError(f"mip level must be >= 0, got {level}")
    return max(1, base_width >> level), max(1, base_height >> level)


def mip_byte_size(width: int, height: int, fmt: FormatInfo) -> int:
    """Return the byte size of one face of a `width` x `height` mip level."""
    if fmt.block_bytes is not None:
        return ((width + 3) // 4) * ((height + 3) // 4) * fmt.block_bytes
    if fmt.pixel_bytes is not None:
        return width * height * fmt.pixel_bytes
    if fmt.pixel_bits is not None:
        return (width * height * fmt.pixel_bits + 7) // 8
    raise UnsupportedFormatError(fmt.name)


def mip_count(header: DDSHeader) -> int:
    """Number of mip levels; a zero count in the header means one level."""
    return max(1, header.mip_map_count)


def plan_mip_levels(header: DDSHeader, fmt: FormatInfo) -> List[MipLevel]:
    """Return the size of every mip level, largest (level 0) first."""
    plan = []
    for level in range(mip_count(header)):
        w, h = mip_dimensions(level, header.width, header.height)
        plan.append(MipLevel(level, w, h, mip_byte_size(w, h, fmt)))
    return plan


def face_count(header: DDSHeader) -> int:
    return CUBEMAP_FACES if header.is_cubemap else 1


def payload_size(plan: List[MipLevel], faces: int = 1,
                 levels: Optional[Iterable[int]] = None) -> int:
    """Total bytes of the given levels (all when `levels` is None) across faces."""
    if levels is None:
        return faces * sum(m.byte_size for m in plan)
    wanted = set(levels)
    return faces * sum(m.byte_size for m in plan if m.level in wanted)


def minimum_combined_size(info: HeaderInfo, fmt: FormatInfo) -> int:
    """Smallest length a file holding every mip level of `info` can have."""
    plan = plan_mip_levels(info.header, fmt)
    return info.header_length + payload_size(plan, face_count(info.header))


def is_already_combined(file_size: int, info: HeaderInfo, fmt: FormatInfo) -> bool:
    """Return True when a file of `file_size` bytes already holds every mip level.

    A header fragment only carries the smallest mips, so it is always shorter
    than the headers plus the complete payload; a combined file never is.
    """
    minimum = minimum_combined_size(info, fmt)
    logger.debug(
        "Already-combined check: file=%d bytes, minimum=%d bytes", file_size, minimum
    )
    return file_size >= minimum


def align_padding(length: int, alignment: int = 4) -> int:
    """Zero bytes needed to bring `length` up to a multiple of `alignment`."""
    return (-length) % alignment
