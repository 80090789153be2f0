"""DDS header codec, mip layout, fragment resolution and reassembly."""

from .header import (
    DDS_MAGIC,
    DX10_FOURCC,
    HEADER_SIZE,
    DX10_HEADER_SIZE,
    PixelFormatFlags,
    Caps,
    Caps2,
    PixelFormat,
    DDSHeader,
    DX10Header,
    HeaderInfo,
    decode_header,
    encode_header,
    read_header_file,
)
from .layout import (
    FormatInfo,
    MipLevel,
    resolve_format,
    mip_dimensions,
    mip_byte_size,
    mip_count,
    plan_mip_levels,
    face_count,
    payload_size,
    minimum_combined_size,
    is_already_combined,
    align_padding,
)
from .fragments import (
    FragmentRole,
    FragmentChain,
    FragmentSet,
    split_base_name,
    classify_fragment,
    resolve_fragments,
    list_base_names,
)
from .combiner import END_MARKER, CombineResult, DDSCombiner, combine_fragments

__all__ = [
    "DDS_MAGIC", "DX10_FOURCC", "HEADER_SIZE", "DX10_HEADER_SIZE",
    "PixelFormatFlags", "Caps", "Caps2",
    "PixelFormat", "DDSHeader", "DX10Header", "HeaderInfo",
    "decode_header", "encode_header", "read_header_file",
    "FormatInfo", "MipLevel",
    "resolve_format", "mip_dimensions", "mip_byte_size", "mip_count",
    "plan_mip_levels", "face_count", "payload_size",
    "minimum_combined_size", "is_already_combined", "align_padding",
    "FragmentRole", "FragmentChain", "FragmentSet",
    "split_base_name", "classify_fragment", "resolve_fragments", "list_base_names",
    "END_MARKER", "CombineResult", "DDSCombiner", "combine_fragments",
]
