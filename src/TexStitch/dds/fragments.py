"""Map a base name to the on-disk fragments of a split DDS texture.

Naming convention (``dds`` being the configured extension):

- ``<base>.dds``       bare container: a header fragment or an already
                       combined texture
- ``<base>.dds.0``     explicit header fragment (headers + smallest mips)
- ``<base>.dds.N``     separate mip fragment, N >= 1, highest N = largest mip
- ``<base>.dds.a``     alternate-chain header (``.0a`` is accepted too)
- ``<base>.dds.Na``    alternate-chain mip fragment
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..config import StitchConfig
from ..core.errors import (
    InvalidTexturePathError,
    NoHeaderFileFoundError,
    TexStitchError,
)
from ..core.filesystem import LocalFileSystem
from .header import read_header_file
from .layout import is_already_combined, resolve_format

logger = logging.getLogger("tex_stitch.dds.fragments")


class FragmentRole(Enum):
    BARE = "bare"
    HEADER = "header"
    MIP = "mip"
    ALT_HEADER = "alt_header"
    ALT_MIP = "alt_mip"


@dataclass(frozen=True)
class FragmentChain:
    """Header fragment plus its separate mips, ascending by fragment number."""

    header_file: str
    mip_files: Tuple[str, ...] = ()
    mip_numbers: Tuple[int, ...] = ()


@dataclass(frozen=True)
class FragmentSet:
    """Resolved fragments of one texture and its optional alternate chain."""

    directory: str
    base_name: str
    header_file: str
    mip_files: Tuple[str, ...] = ()
    mip_numbers: Tuple[int, ...] = ()
    alternate_header_file: Optional[str] = None
    alternate_mip_files: Tuple[str, ...] = ()
    alternate_mip_numbers: Tuple[int, ...] = ()
    already_combined: bool = False

    def __post_init__(self):
        if self.already_combined and self.mip_files:
            raise ValueError("an already combined fragment set cannot list mip files")

    @property
    def main_chain(self) -> FragmentChain:
        return FragmentChain(self.header_file, self.mip_files, self.mip_numbers)

    @property
    def alternate_chain(self) -> Optional[FragmentChain]:
        if self.alternate_header_file is None:
            return None
        return FragmentChain(
            self.alternate_header_file,
            self.alternate_mip_files,
            self.alternate_mip_numbers,
        )


def split_base_name(path: str, extension: str = "dds") -> Tuple[str, str]:
    """Split any fragment path (or bare base name) into (directory, base name).

    ``tex``, ``tex.dds``, ``tex.dds.0``, ``tex.dds.3``, ``tex.dds.a`` and
    ``tex.dds.2a`` all yield base name ``tex``.
    """
    directory, name = os.path.split(path)
    if not name:
        raise InvalidTexturePathError(path, "no file name component")
    m = re.match(
        rf"^(?P<base>.+)\.(?i:{re.escape(extension)})(?:\.(?:\d+[a-z]?|[a-z]))?$",
        name,
    )
    base = m.group("base") if m else name
    return directory or ".", base


def _fragment_pattern(base_name: str, extension: str, alternate_tag: str):
    return re.compile(
        rf"^{re.escape(base_name)}\.(?i:{re.escape(extension)})"
        rf"(?:\.(?P<num>\d+)?(?P<tag>{re.escape(alternate_tag)})?)?$"
    )


def classify_fragment(file_name: str, base_name: str, extension: str = "dds",
                      alternate_tag: str = "a") -> Optional[Tuple[FragmentRole, Optional[int]]]:
    """Return (role, fragment number) for `file_name`, or None when it is not a fragment."""
    m = _fragment_pattern(base_name, extension, alternate_tag).match(file_name)
    if m is None:
        return None
    num, tag = m.group("num"), m.group("tag")
    if num is None and tag is None:
        # "<base>.dds" matches; "<base>.dds." does not name a fragment.
        if file_name.endswith("."):
            return None
        return FragmentRole.BARE, None
    number = int(num) if num is not None else None
    if tag is None:
        if number == 0:
            return FragmentRole.HEADER, 0
        return FragmentRole.MIP, number
    if number is None or number == 0:
        return FragmentRole.ALT_HEADER, number
    return FragmentRole.ALT_MIP, number


def _is_canonical(path: str, number: int) -> bool:
    return re.search(rf"\.{number}[a-z]?$", os.path.basename(path)) is not None


def _add_numbered(bucket: Dict[int, str], number: int, path: str,
                  base_name: str) -> None:
    """Store `path` under `number`; ``.1`` and ``.01`` collide.

    On a collision the spelling without leading zeros is kept.
    """
    current = bucket.get(number)
    if current is None:
        bucket[number] = path
        return
    keep, drop = current, path
    if _is_canonical(path, number) and not _is_canonical(current, number):
        keep, drop = path, current
    logger.warning(
        "Duplicate fragment number %d for '%s': using %s, ignoring %s",
        number, base_name, keep, drop,
    )
    bucket[number] = keep


def _sorted_mips(mips: Dict[int, str]) -> Tuple[Tuple[str, ...], Tuple[int, ...]]:
    numbers = tuple(sorted(mips))
    return tuple(mips[n] for n in numbers), numbers


def resolve_fragments(directory: str, base_name: str,
                      config: Optional[StitchConfig] = None,
                      fs: Optional[LocalFileSystem] = None) -> FragmentSet:
    """Classify every fragment of `base_name` in `directory`.

    Raises NoHeaderFileFoundError when neither ``<base>.dds.0`` nor
    ``<base>.dds`` exists. When the bare file already holds the complete
    payload the returned set is flagged ``already_combined`` and lists no
    mips, so the caller must not touch anything.
    """
    config = config or StitchConfig()
    fs = fs or LocalFileSystem()
    ext = config.extension
    combined_marker = f".{config.combined_identifier}.".lower()

    bare: Optional[str] = None
    headers: Dict[int, str] = {}
    mips: Dict[int, str] = {}
    alt_headers: Dict[int, str] = {}
    alt_mips: Dict[int, str] = {}

    for name in fs.list_files(directory, base_name):
        if combined_marker in name.lower():
            logger.debug("Skipping previously combined output: %s", name)
            continue
        classified = classify_fragment(name, base_name, ext, config.alternate_tag)
        if classified is None:
            logger.debug("Ignoring %s: shares the prefix but is not a fragment", name)
            continue
        role, number = classified
        path = os.path.join(directory, name)
        if role is FragmentRole.BARE:
            bare = path
        elif role is FragmentRole.HEADER:
            _add_numbered(headers, number, path, base_name)
        elif role is FragmentRole.MIP:
            _add_numbered(mips, number, path, base_name)
        elif role is FragmentRole.ALT_HEADER:
            # ".a" sorts as -1 so ".0a" wins when both exist.
            key = -1 if number is None else number
            _add_numbered(alt_headers, key, path, base_name)
        else:
            _add_numbered(alt_mips, number, path, base_name)

    header0 = headers.get(0)
    if bare is not None:
        combined = _bare_is_combined(bare, config, fs, has_header0=header0 is not None)
        if combined:
            logger.info("%s already holds every mip level; nothing to combine.", bare)
            return FragmentSet(
                directory=directory,
                base_name=base_name,
                header_file=bare,
                already_combined=True,
            )

    header_file = header0 or bare
    if header_file is None:
        raise NoHeaderFileFoundError(directory, base_name)

    mip_files, mip_numbers = _sorted_mips(mips)

    alternate_header = alt_headers[max(alt_headers)] if alt_headers else None
    alt_files: Tuple[str, ...] = ()
    alt_numbers: Tuple[int, ...] = ()
    if alternate_header is not None:
        alt_files, alt_numbers = _sorted_mips(alt_mips)
    elif alt_mips:
        logger.warning(
            "Ignoring %d alternate mip fragment(s) for '%s': no alternate header found.",
            len(alt_mips), base_name,
        )

    fragment_set = FragmentSet(
        directory=directory,
        base_name=base_name,
        header_file=header_file,
        mip_files=mip_files,
        mip_numbers=mip_numbers,
        alternate_header_file=alternate_header,
        alternate_mip_files=alt_files,
        alternate_mip_numbers=alt_numbers,
    )
    logger.debug(
        "Resolved '%s': header=%s, %d mip fragment(s), alternate=%s (%d mip fragment(s))",
        base_name, header_file, len(mip_files), alternate_header, len(alt_files),
    )
    return fragment_set


def _bare_is_combined(path: str, config: StitchConfig, fs: LocalFileSystem,
                      has_header0: bool) -> bool:
    """Apply the already-combined check to the bare container file.

    With a ``.0`` sibling present the bare file is only a candidate output,
    so failing to decode it is logged rather than fatal.
    """
    try:
        info = read_header_file(path, fs)
        fmt = resolve_format(info.header, info.dx10)
    except TexStitchError as exc:
        if not has_header0:
            raise
        logger.warning("Ignoring unreadable %s (using .0 header fragment): %s", path, exc)
        return False
    return is_already_combined(fs.getsize(path), info, fmt)


def list_base_names(directory: str, config: Optional[StitchConfig] = None,
                    fs: Optional[LocalFileSystem] = None) -> List[str]:
    """Return every distinct base name that has fragments in `directory`."""
    config = config or StitchConfig()
    fs = fs or LocalFileSystem()
    combined_marker = f".{config.combined_identifier}.".lower()
    bases = set()
    for name in fs.list_files(directory):
        if combined_marker in name.lower():
            continue
        _, base = split_base_name(name, config.extension)
        if base != name:
            bases.add(base)
    return sorted(bases)
