"""Orchestrate fragment reassembly for one or many textures.

`Stitcher` resolves each input to its fragment set, combines it, and keeps
per-input failures from aborting a batch.
"""

import logging
import os
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from .config import StitchConfig
from .core import LocalFileSystem, TexStitchError
from .dds import (
    CombineResult,
    DDSCombiner,
    FragmentSet,
    END_MARKER,
    align_padding,
    face_count,
    is_already_combined,
    list_base_names,
    minimum_combined_size,
    plan_mip_levels,
    read_header_file,
    resolve_format,
    resolve_fragments,
    split_base_name,
)

logger = logging.getLogger("tex_stitch")


class Stitcher:
    """Resolve and combine split DDS textures."""

    def __init__(self, config: Optional[StitchConfig] = None,
                 fs: Optional[LocalFileSystem] = None):
        self.config = config or StitchConfig()
        self.fs = fs or LocalFileSystem()
        self.combiner = DDSCombiner(self.config, self.fs)
        self.failed = 0
        self.errors: Dict[str, str] = {}

    def resolve(self, path: str) -> FragmentSet:
        directory, base_name = split_base_name(path, self.config.extension)
        logger.debug("Resolving '%s' in %s", base_name, directory)
        return resolve_fragments(directory, base_name, self.config, self.fs)

    def combine(self, path: str) -> CombineResult:
        """Combine the texture `path` names (any fragment or the bare base name)."""
        return self.combiner.combine(self.resolve(path))

    def inspect(self, path: str) -> dict:
        """Describe what combining `path` would do, without writing anything."""
        fragment_set = self.resolve(path)
        report = {
            "base_name": fragment_set.base_name,
            "directory": fragment_set.directory,
            "already_combined": fragment_set.already_combined,
            "header_file": fragment_set.header_file,
            "mip_files": list(fragment_set.mip_files),
            "alternate_header_file": fragment_set.alternate_header_file,
            "alternate_mip_files": list(fragment_set.alternate_mip_files),
        }
        info = read_header_file(fragment_set.header_file, self.fs)
        fmt = resolve_format(info.header, info.dx10)
        plan = plan_mip_levels(info.header, fmt)
        faces = face_count(info.header)
        file_size = self.fs.getsize(fragment_set.header_file)

        # Fragment N of K holds level K - N.
        highest = max(fragment_set.mip_numbers, default=0)
        sources = {highest - n: f for n, f in zip(fragment_set.mip_numbers,
                                                   fragment_set.mip_files)}
        payload = faces * sum(m.byte_size for m in plan)
        body = info.encoded_length + payload
        padding = align_padding(body) if self.config.align_payload else 0

        report.update({
            "width": info.header.width,
            "height": info.header.height,
            "format": fmt.name,
            "dx10": info.dx10 is not None,
            "faces": faces,
            "header_file_size": file_size,
            "minimum_combined_size": minimum_combined_size(info, fmt),
            "header_file_is_combined": is_already_combined(file_size, info, fmt),
            "levels": [
                {
                    "level": m.level,
                    "width": m.width,
                    "height": m.height,
                    "byte_size": m.byte_size,
                    "source": sources.get(m.level, fragment_set.header_file),
                }
                for m in plan
            ],
        })
        if not fragment_set.already_combined:
            report["output_path"] = self.combiner.output_path(fragment_set)
            report["expected_output_size"] = body + padding + len(END_MARKER)
        return report

    def expand_inputs(self, paths: Iterable[str]) -> List[str]:
        """Expand directory inputs into one entry per fragment base name."""
        expanded = []
        for path in paths:
            if os.path.isdir(path):
                bases = list_base_names(path, self.config, self.fs)
                logger.info("Found %d texture(s) in %s", len(bases), path)
                expanded.extend(os.path.join(path, b) for b in bases)
            else:
                expanded.append(path)
        return expanded

    def run(self, paths: Iterable[str]) -> List[CombineResult]:
        """Combine every input, counting failures instead of aborting.

        With ``stop_on_error`` the first failure propagates. ``failed`` and
        ``errors`` describe the latest call only.
        """
        self.failed = 0
        self.errors = {}
        inputs = self.expand_inputs(paths)
        results = []
        with tqdm(total=len(inputs), desc="Combining", unit="tex",
                  disable=len(inputs) < 2) as bar:
            for path in inputs:
                try:
                    results.append(self.combine(path))
                except (TexStitchError, OSError) as exc:
                    self.failed += 1
                    self.errors[path] = str(exc)
                    logger.error("Failed to combine %s: %s", path, exc)
                    if self.config.stop_on_error:
                        raise
                finally:
                    bar.update(1)
        combined = sum(1 for r in results if not r.already_combined)
        logger.info(
            "Done: %d combined, %d already combined, %d failed",
            combined, len(results) - combined, self.failed,
        )
        return results
