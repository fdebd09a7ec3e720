"""Configuration loader and validator for the documentation generator.

Loads settings from configs/config.yaml and provides typed access
to all configuration sections via dataclasses.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from dossier.parsers.jsdoc import Visibility
from dossier.utils.logging import DEFAULT_FORMAT

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "configs" / "config.yaml"

OUTPUT_FORMATS = ("html", "json")


@dataclass
class OutputConfig:
    """Configuration for documentation output."""

    output_dir: str = "docs/api"
    default_format: str = "html"


@dataclass
class InspectionConfig:
    """Configuration for member resolution.

    Attributes:
        default_visibility: Visibility of symbols that never declare one.
        type_filters: Regular expressions over qualified names; matching
            types and static members are excluded.
        visibility_overrides: Source path to the default visibility of the
            symbols declared in it.
    """

    default_visibility: str = "PUBLIC"
    type_filters: list[str] = field(default_factory=list)
    visibility_overrides: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Visibility.parse(self.default_visibility)
        for value in self.visibility_overrides.values():
            Visibility.parse(value)

    @property
    def visibility(self) -> Visibility:
        return Visibility.parse(self.default_visibility)

    def file_visibilities(self) -> dict[str, Visibility]:
        return {path: Visibility.parse(v) for path, v in self.visibility_overrides.items()}


@dataclass
class SourcesConfig:
    """Input files: scripts declare globals, modules are ES6 modules."""

    sources: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""

    output: OutputConfig = field(default_factory=OutputConfig)
    inspection: InspectionConfig = field(default_factory=InspectionConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _build_output_config(data: dict) -> OutputConfig:
    """Build an OutputConfig from a dictionary.

    Args:
        data: Dictionary with output settings.

    Returns:
        A configured OutputConfig instance.

    Raises:
        ValueError: If the default format is not supported.
    """
    default_format = data.get("default_format", "html")
    if default_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {default_format!r}")
    return OutputConfig(
        output_dir=data.get("output_dir", "docs/api"),
        default_format=default_format,
    )


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load application configuration from a YAML file.

    Reads the YAML config file and constructs a fully typed AppConfig
    object. Falls back to defaults for any missing values.

    Args:
        config_path: Path to the YAML config file. If None, uses the
            default path at configs/config.yaml.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        ValueError: If a visibility name or output format is unknown.
        yaml.YAMLError: If the config file contains invalid YAML.
    """
    path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning("Config file not found at %s, using defaults", path)
        return AppConfig()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    logger.info("Loaded configuration from %s", path)

    inspection_data = raw.get("inspection", {})
    inspection_config = InspectionConfig(
        default_visibility=inspection_data.get("default_visibility", "PUBLIC"),
        type_filters=inspection_data.get("type_filters") or [],
        visibility_overrides=inspection_data.get("visibility_overrides") or {},
    )

    sources_data = raw.get("sources", {})
    sources_config = SourcesConfig(
        sources=sources_data.get("sources") or [],
        modules=sources_data.get("modules") or [],
    )

    logging_data = raw.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_data.get("level", "INFO"),
        format=logging_data.get("format", DEFAULT_FORMAT),
        file=logging_data.get("file"),
    )

    return AppConfig(
        output=_build_output_config(raw.get("output", {})),
        inspection=inspection_config,
        sources=sources_config,
        logging=logging_config,
    )
