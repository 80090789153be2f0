"""Reassemble split DDS fragments into one container file.

Output layout::

    [128-byte header][20-byte DX10 header, if any]
    [payload: face 0 levels 0..n-1, face 1 levels 0..n-1, ...]
    [0-3 zero bytes of alignment][b"CExtCEnd"]

Each separate mip fragment holds one level for every face, faces stored
back to back. The header fragment holds the levels that have no separate
fragment, in the same face-major order.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import StitchConfig
from ..core.errors import (
    LayoutOverrunError,
    MissingMipFragmentError,
    TexStitchError,
)
from ..core.filesystem import LocalFileSystem
from .fragments import FragmentChain, FragmentSet
from .header import HeaderInfo, encode_header, read_header_file
from .layout import (
    FormatInfo,
    MipLevel,
    align_padding,
    face_count,
    plan_mip_levels,
    resolve_format,
)

logger = logging.getLogger("tex_stitch.dds.combiner")

END_MARKER = b"CExtCEnd"


@dataclass
class CombineResult:
    """Outcome of combining one fragment set."""

    output_path: str
    alternate_output_path: Optional[str] = None
    already_combined: bool = False
    bytes_written: int = 0
    alternate_error: Optional[str] = None


class DDSCombiner:
    """Write the main chain and the optional alternate chain of a FragmentSet."""

    def __init__(self, config: Optional[StitchConfig] = None,
                 fs: Optional[LocalFileSystem] = None):
        self.config = config or StitchConfig()
        self.fs = fs or LocalFileSystem()

    def output_path(self, fragment_set: FragmentSet, alternate: bool = False) -> str:
        """Return ``<dir>/<base>[.<identifier>][<alternate suffix>].<ext>``."""
        cfg = self.config
        stem = fragment_set.base_name
        if cfg.use_safe_name:
            stem += f".{cfg.combined_identifier}"
        if alternate:
            stem += cfg.alternate_output_suffix
        return os.path.join(fragment_set.directory, f"{stem}.{cfg.extension}")

    def combine(self, fragment_set: FragmentSet) -> CombineResult:
        """Combine every chain of `fragment_set` and return where it went.

        An already combined set is returned untouched. A main-chain failure
        propagates; an alternate-chain failure is recorded on the result
        unless ``strict_alternate`` is set.
        """
        if fragment_set.already_combined:
            logger.info(
                "File %s is already a valid DDS file. Skipping combining.",
                fragment_set.header_file,
            )
            return CombineResult(
                output_path=fragment_set.header_file, already_combined=True
            )

        output = self.output_path(fragment_set)
        result = CombineResult(output_path=output)
        result.bytes_written = self.combine_chain(fragment_set.main_chain, output)

        alt_chain = fragment_set.alternate_chain
        if alt_chain is not None:
            alt_output = self.output_path(fragment_set, alternate=True)
            try:
                result.bytes_written += self.combine_chain(alt_chain, alt_output)
                result.alternate_output_path = alt_output
            except TexStitchError as exc:
                if self.config.strict_alternate:
                    raise
                logger.error("Alternate chain for '%s' failed: %s",
                             fragment_set.base_name, exc)
                result.alternate_error = str(exc)
        return result

    def combine_chain(self, chain: FragmentChain, output_path: str) -> int:
        """Write one chain to `output_path` and return the bytes written."""
        header_file = self._prepare_header_fragment(chain.header_file)
        info = read_header_file(header_file, self.fs)
        fmt = resolve_format(info.header, info.dx10)
        plan = plan_mip_levels(info.header, fmt)
        faces = face_count(info.header)
        logger.debug(
            "Decoded %s: %dx%d, %d level(s), %d face(s), format %s",
            header_file, info.header.width, info.header.height,
            len(plan), faces, fmt.name,
        )

        separate = self._load_mip_fragments(chain, len(plan))
        body = self._assemble(info, fmt, plan, faces, separate, header_file)

        with self.fs.atomic_writer(output_path) as out:
            out.write(body)
        logger.info(
            "Combined %d fragment(s) into %s (%d bytes)",
            len(chain.mip_files) + 1, output_path, len(body),
        )
        return len(body)

    def _prepare_header_fragment(self, header_file: str) -> str:
        """Return the fragment to read headers from, backing up a bare header.

        A bare ``<base>.<ext>`` header is about to be overwritten by the
        combined output, so it is first copied to ``<base>.<ext>.0``. An
        existing ``.0`` sibling is authoritative and never recreated.
        """
        ext = f".{self.config.extension}"
        if not header_file.lower().endswith(ext.lower()):
            return header_file
        sibling = f"{header_file}.0"
        if self.fs.exists(sibling):
            logger.debug("Using existing header fragment %s", sibling)
            return sibling
        self.fs.copy_file(header_file, sibling)
        logger.info("Backed up header fragment %s -> %s", header_file, sibling)
        return sibling

    def _load_mip_fragments(self, chain: FragmentChain,
                            level_count: int) -> Dict[int, tuple]:
        """Read separate fragments and key them by the mip level they hold.

        Fragment N of K holds level K - N, so the highest-numbered fragment is
        level 0. Numbers must run 1..K without gaps.
        """
        if not chain.mip_files:
            return {}
        numbers = list(chain.mip_numbers)
        by_number = dict(zip(numbers, chain.mip_files))
        highest = max(numbers)
        if highest > level_count:
            raise LayoutOverrunError(
                f"{chain.header_file}: {highest} separate mip fragment(s) but the "
                f"header declares only {level_count} level(s)",
                path=chain.header_file,
                expected=level_count,
                available=highest,
            )

        loaded = {}
        # Largest mip (highest fragment number) first.
        for number in range(highest, 0, -1):
            level = highest - number
            path = by_number.get(number)
            if path is None:
                raise MissingMipFragmentError(
                    _sibling_fragment_path(chain.mip_files[0], number),
                    level=level,
                    reason="fragment numbering has a gap",
                )
            try:
                data = self.fs.read_bytes(path)
            except OSError as exc:
                raise MissingMipFragmentError(path, level=level, reason=str(exc)) from exc
            loaded[level] = (path, data)
        return loaded

    def _assemble(self, info: HeaderInfo, fmt: FormatInfo, plan: List[MipLevel],
                  faces: int, separate: Dict[int, tuple], header_file: str) -> bytes:
        """Build the combined file contents in memory."""
        out = bytearray(encode_header(info.header, info.dx10))
        payload = info.payload
        payload_offset = 0

        for face in range(faces):
            for mip in plan:
                size = mip.byte_size
                if mip.level in separate:
                    path, data = separate[mip.level]
                    start = face * size
                    if start + size > len(data):
                        raise LayoutOverrunError(
                            f"{path}: mip level {mip.level} face {face} needs bytes "
                            f"{start}..{start + size}, fragment has {len(data)}",
                            path=path, level=mip.level, face=face,
                            expected=start + size, available=len(data),
                        )
                    out += data[start:start + size]
                else:
                    if payload_offset + size > len(payload):
                        raise LayoutOverrunError(
                            f"{header_file}: mip level {mip.level} face {face} needs "
                            f"{size} bytes at payload offset {payload_offset}, "
                            f"header fragment payload has {len(payload)}",
                            path=header_file, level=mip.level, face=face,
                            expected=payload_offset + size, available=len(payload),
                        )
                    out += payload[payload_offset:payload_offset + size]
                    payload_offset += size

        leftover = len(payload) - payload_offset
        if leftover:
            logger.debug("%s: %d trailing payload byte(s) not part of any mip level",
                          header_file, leftover)

        if self.config.align_payload:
            out += b"\x00" * align_padding(len(out))
        out += END_MARKER
        return bytes(out)


def _sibling_fragment_path(existing_fragment: str, number: int) -> str:
    """Path of fragment `number` next to `existing_fragment` (``<base>.<ext>.<N>[tag]``)."""
    stem, _, suffix = existing_fragment.rpartition(".")
    tag = suffix.lstrip("0123456789")
    return f"{stem}.{number}{tag}"


def combine_fragments(fragment_set: FragmentSet,
                      config: Optional[StitchConfig] = None,
                      fs: Optional[LocalFileSystem] = None) -> CombineResult:
    """Functional wrapper around DDSCombiner.combine()."""
    return DDSCombiner(config, fs).combine(fragment_set)
