"""Define the typed configuration model for fragment reassembly.

Use `StitchConfig` to load, validate, and persist runtime settings.
"""

import dataclasses
import os
import logging
import yaml
from dataclasses import dataclass

from .core.filesystem import LocalFileSystem

logger = logging.getLogger("tex_stitch.config")

_SUPPORTED_CONFIG_VERSION = 1


@dataclass
class StitchConfig:
    """Reassembly configuration."""

    config_version: int = 1
    # Container extension shared by every fragment name (<base>.<extension>.N).
    extension: str = "dds"
    # Write <base>.<combined_identifier>.<ext> instead of overwriting <base>.<ext>.
    use_safe_name: bool = False
    combined_identifier: str = "combined"
    # Letter marking the linked alternate chain (<base>.dds.a, <base>.dds.1a).
    alternate_tag: str = "a"
    alternate_output_suffix: str = "_gloss"
    align_payload: bool = True
    strict_alternate: bool = False
    stop_on_error: bool = False
    log_level: str = "INFO"
    log_file: str = ""

    @classmethod
    def from_yaml(cls, path: str) -> "StitchConfig":
        """Load configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write configuration to a YAML file, replacing it atomically."""
        text = yaml.safe_dump(dataclasses.asdict(self), default_flow_style=False,
                              sort_keys=False)
        with LocalFileSystem().atomic_writer(path) as out:
            out.write(text.encode("utf-8"))

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        ext = self.extension
        if not ext or not ext.isalnum():
            errors.append(
                f"extension must be a non-empty alphanumeric string without dots, got '{ext}'"
            )

        ident = self.combined_identifier
        if not ident or any(c in ident for c in "./\\"):
            errors.append(
                "combined_identifier must be non-empty and contain no dots or "
                f"path separators, got '{ident}'"
            )

        tag = self.alternate_tag
        if len(tag) != 1 or not tag.isalpha() or not tag.islower():
            errors.append(
                f"alternate_tag must be a single lowercase letter, got '{tag}'"
            )

        suffix = self.alternate_output_suffix
        if not suffix or any(c in suffix for c in "/\\"):
            errors.append(
                "alternate_output_suffix must be non-empty and contain no path "
                f"separators, got '{suffix}'"
            )

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )

        if errors:
            raise ValueError(
                "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


def _merge_dict_to_dataclass(obj, data: dict, _path: str = ""):
    for key, value in data.items():
        full_key = f"{_path}{key}"
        if not hasattr(obj, key):
            logger.warning("Unknown config key ignored: '%s'", full_key)
            continue
        field_val = getattr(obj, key)
        if dataclasses.is_dataclass(field_val) and isinstance(value, dict):
            _merge_dict_to_dataclass(field_val, value, f"{full_key}.")
            continue
        if value is None and field_val is not None:
            logger.warning(
                "Config key '%s' is null but field default is %s. Using default value.",
                full_key, type(field_val).__name__,
            )
            continue
        expected_type = type(field_val)
        # bool is an int subclass; keep the two apart in both directions.
        if (not isinstance(value, expected_type)
                or (expected_type is int and isinstance(value, bool))):
            logger.warning(
                "Config type mismatch for '%s': expected %s, got %s (%r). "
                "Using default value.",
                full_key, expected_type.__name__, type(value).__name__, value,
            )
            continue
        setattr(obj, key, value)
