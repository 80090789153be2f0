"""Entrypoint for `python -m TexStitch`.

Usage:
  python -m TexStitch [paths...] [options]
"""
import logging

logger = logging.getLogger("tex_stitch")


def _run_cli():
    from .cli import main as cli_main
    logger.debug("Dispatching to CLI entrypoint.")
    cli_main()


if __name__ == "__main__":
    _run_cli()
