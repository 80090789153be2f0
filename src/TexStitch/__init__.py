"""Provide package metadata for `TexStitch`."""

import logging as _logging

__version__ = "1.0.0"
_logger = _logging.getLogger("tex_stitch")
_logger.addHandler(_logging.NullHandler())

__all__ = ["__version__"]
