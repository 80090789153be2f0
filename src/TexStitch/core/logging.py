"""Logging setup for TexStitch.

The CLI installs a plain stderr handler on the root logger before the config
is read, so config warnings are visible early. ``setup_logging`` then only
adjusts the ``tex_stitch`` hierarchy: its level comes from
``StitchConfig.log_level`` and ``StitchConfig.log_file`` adds a rotating file
with timestamps, which the terse console format leaves out.
"""

import logging
import logging.handlers
import os

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# 10 MB max per log file, keep 3 rotated backups
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 3

package_logger = logging.getLogger("tex_stitch")


def setup_logging(config) -> logging.Logger:
    """Apply ``config.log_level`` and ``config.log_file`` to the package logger.

    Calling it again with the same log file does not attach a second handler.
    """
    level = getattr(logging, config.log_level.upper())
    package_logger.setLevel(level)
    if config.log_file:
        _attach_log_file(os.path.abspath(config.log_file))
    return package_logger


def _attach_log_file(path: str):
    for handler in package_logger.handlers:
        if getattr(handler, "baseFilename", None) == path:
            return
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    package_logger.addHandler(handler)
    package_logger.debug("Logging to %s", path)
