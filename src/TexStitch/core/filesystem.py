"""Local filesystem capability used by the resolver and combiner."""

import contextlib
import logging
import os
import shutil
import threading
import uuid
from typing import BinaryIO, Iterator, List

logger = logging.getLogger("tex_stitch.fs")


class LocalFileSystem:
    """Directory enumeration and byte-level file access.

    Fragments are only ever opened read-only so a running game client that
    streams from the same files is not blocked. Outputs are written to a
    temporary sibling and moved into place, so a failed write never leaves a
    truncated file behind.
    """

    def list_files(self, directory: str, prefix: str = "") -> List[str]:
        """Return sorted names of regular files in `directory` starting with `prefix`."""
        names = []
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.name.startswith(prefix) and entry.is_file():
                    names.append(entry.name)
        names.sort()
        return names

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def getsize(self, path: str) -> int:
        return os.path.getsize(path)

    def read_bytes(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def copy_file(self, src: str, dst: str) -> None:
        """Copy `src` to `dst`; refuses to overwrite an existing `dst`."""
        with open(src, "rb") as fsrc, open(dst, "xb") as fdst:
            shutil.copyfileobj(fsrc, fdst)
        logger.debug("Copied %s -> %s", src, dst)

    @contextlib.contextmanager
    def atomic_writer(self, path: str) -> Iterator[BinaryIO]:
        """Yield a binary handle whose contents replace `path` on clean exit."""
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        tmp_path = (
            f"{path}.tmp.{os.getpid()}.{threading.get_ident()}.{uuid.uuid4().hex[:8]}"
        )
        try:
            with open(tmp_path, "wb") as f:
                yield f
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
