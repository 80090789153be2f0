"""Command-line interface for fragment reassembly."""

import argparse
import json
import logging
import os
import sys

from .config import StitchConfig
from .core import setup_logging, TexStitchError
from .core.logging import CONSOLE_FORMAT

logger = logging.getLogger("tex_stitch")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="texstitch",
        description="Combine split DDS texture fragments into a single file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  texstitch textures/defaultnouvs
  texstitch textures/flat_normal_ddn.dds.0 --safe-name
  texstitch textures/ --dry-run
  texstitch --generate-config --config texstitch.yaml

Fragments must sit in the same directory as <base>.dds(.0), <base>.dds.1,
<base>.dds.2, ... By default the combined texture overwrites <base>.dds (the
original header fragment is kept as <base>.dds.0). Already combined files
are skipped.
        """
    )
    parser.add_argument("paths", nargs="*",
                        help="Base names, fragment paths or directories to combine")
    parser.add_argument("--config", "-c", help="Path to config YAML")
    parser.add_argument("--safe-name", action="store_true",
                        help="Write <base>.<identifier>.dds instead of overwriting <base>.dds")
    parser.add_argument("--identifier",
                        help="Identifier used by --safe-name (default: combined)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print what would be combined as JSON; write nothing")
    parser.add_argument("--stop-on-error", action="store_true",
                        help="Abort the batch at the first failing texture")
    parser.add_argument("--generate-config", action="store_true",
                        help="Write a default config YAML and exit")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--log-file", help="Also log to this file")
    return parser


def main(argv=None):
    """Parse CLI arguments, combine the requested textures, and exit."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        config = StitchConfig()
        dest = args.config or "texstitch.yaml"
        if os.path.isdir(dest):
            dest = os.path.join(dest, "texstitch.yaml")
        config.to_yaml(dest)
        logger.info("Generated default %s", dest)
        print(f"Generated default {dest}")
        return

    if not args.paths:
        parser.print_help()
        return

    # Ensure early validation warnings from from_yaml() are visible on stderr
    # before logging is configured.
    logging.basicConfig(level=logging.WARNING, format=CONSOLE_FORMAT)

    if args.config:
        if not os.path.exists(args.config):
            logger.error("Config file not found: %s", args.config)
            print(f"Error: Config file not found: {args.config}")
            sys.exit(1)
        try:
            config = StitchConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    else:
        config = StitchConfig()

    # CLI overrides
    if args.safe_name:
        config.use_safe_name = True
    if args.identifier is not None:
        config.combined_identifier = args.identifier
    if args.stop_on_error:
        config.stop_on_error = True
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config)

    from .stitcher import Stitcher
    stitcher = Stitcher(config)

    if args.dry_run:
        if _dry_run(stitcher, args.paths):
            sys.exit(1)
        return

    try:
        results = stitcher.run(args.paths)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)
    except (TexStitchError, OSError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    for result in results:
        if result.already_combined:
            print(f"Already combined, skipped: {result.output_path}")
            continue
        print(f"Combined file created: {result.output_path}")
        if result.alternate_output_path:
            print(f"Combined file created: {result.alternate_output_path}")
        if result.alternate_error:
            print(f"Error: alternate chain failed: {result.alternate_error}")
    for path, message in stitcher.errors.items():
        print(f"Error: {path}: {message}")

    if stitcher.failed:
        sys.exit(1)


def _dry_run(stitcher, paths) -> int:
    """Print an inspection report per input; return the exit code."""
    reports = []
    exit_code = 0
    for path in stitcher.expand_inputs(paths):
        try:
            reports.append(stitcher.inspect(path))
        except (TexStitchError, OSError) as exc:
            logger.error("Cannot inspect %s: %s", path, exc)
            reports.append({"input": path, "error": str(exc)})
            exit_code = 1
    print(json.dumps(reports, indent=2))
    return exit_code


if __name__ == "__main__":
    main()
