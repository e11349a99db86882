"""
Configuration manager for calmmap settings.

Loads configuration from YAML files, validates settings,
and provides environment variable substitution.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from calmmap.core.geometry import DISTANCE_METRICS
from calmmap.export.kml_exporter import DEFAULT_COLOR_COUNT, DEFAULT_COLOR_STOPS, DEFAULT_LINE_WIDTH

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class CalmmapConfig:
    """Validated configuration."""
    name: str = "calmmap"
    database_path: Path = Path("data.db")
    proximity_threshold: float = 1.0
    distance_metric: str = "geodesic"
    overrides_dir: Optional[Path] = Path("overrides")
    overrides_file: Optional[Path] = None
    centerlines_kml: Path = Path("street_centrelines.kml")
    requests_tsv: Path = Path("street-calming-ranked-2020-11.tsv")
    color_stops: List[str] = field(default_factory=lambda: list(DEFAULT_COLOR_STOPS))
    color_count: int = DEFAULT_COLOR_COUNT
    line_width: int = DEFAULT_LINE_WIDTH
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the nested layout of the YAML file."""
        return {
            "name": self.name,
            "database": {"path": str(self.database_path)},
            "adjacency": {
                "proximity_threshold": self.proximity_threshold,
                "distance_metric": self.distance_metric,
            },
            "overrides": {
                "directory": str(self.overrides_dir) if self.overrides_dir else None,
                "file": str(self.overrides_file) if self.overrides_file else None,
            },
            "sources": {
                "centerlines_kml": str(self.centerlines_kml),
                "requests_tsv": str(self.requests_tsv),
            },
            "export": {
                "color_stops": list(self.color_stops),
                "color_count": self.color_count,
                "line_width": self.line_width,
            },
            "logging": {"level": self.log_level},
        }


class ConfigManager:
    """Manages calmmap configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration YAML file (optional)
        """
        self.config_path = config_path
        self._config: Optional[Dict[str, Any]] = None

    def load(self, config_path: Optional[Path] = None) -> CalmmapConfig:
        """Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file (overrides init path)

        Returns:
            CalmmapConfig with validated settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        path = config_path or self.config_path
        if path is None:
            raise ValueError("No configuration path provided")

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            config = yaml.safe_load(f) or {}

        config = self._substitute_env_vars(config)
        self._validate_config(config)
        self._config = config

        return self._create_config(config)

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in configuration.

        Supports syntax: ${VAR_NAME} or ${VAR_NAME:default_value}
        """
        if isinstance(config, dict):
            return {
                key: self._substitute_env_vars(value)
                for key, value in config.items()
            }
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_string(config)
        else:
            return config

    def _substitute_env_var_string(self, value: str) -> str:
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration structure and values.

        Raises:
            ValueError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a mapping")

        for section in ("database", "adjacency", "overrides", "sources", "export", "logging"):
            if section in config and not isinstance(config[section], dict):
                raise ValueError(f"Configuration section {section} must be a dictionary")

        adjacency = config.get("adjacency", {})
        metric = adjacency.get("distance_metric", "geodesic")
        if metric not in DISTANCE_METRICS:
            raise ValueError(
                f"Unknown distance_metric: {metric} (expected one of {sorted(DISTANCE_METRICS)})"
            )

        threshold = float(adjacency.get("proximity_threshold", 1.0))
        if threshold <= 0:
            raise ValueError("proximity_threshold must be positive")

        export = config.get("export", {})
        if len(export.get("color_stops", DEFAULT_COLOR_STOPS)) < 2:
            raise ValueError("export.color_stops needs at least two colours")
        if int(export.get("color_count", DEFAULT_COLOR_COUNT)) < 1:
            raise ValueError("export.color_count must be positive")

        level = str(config.get("logging", {}).get("level", "INFO")).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown logging level: {level}")

    def _create_config(self, config: Dict[str, Any]) -> CalmmapConfig:
        """Create CalmmapConfig from validated configuration."""
        defaults = CalmmapConfig()
        database = config.get("database", {})
        adjacency = config.get("adjacency", {})
        overrides = config.get("overrides", {})
        sources = config.get("sources", {})
        export = config.get("export", {})

        def optional_path(value: Optional[str]) -> Optional[Path]:
            return Path(value).expanduser() if value else None

        return CalmmapConfig(
            name=config.get("name", defaults.name),
            database_path=Path(database.get("path", defaults.database_path)).expanduser(),
            proximity_threshold=float(adjacency.get("proximity_threshold", defaults.proximity_threshold)),
            distance_metric=adjacency.get("distance_metric", defaults.distance_metric),
            overrides_dir=optional_path(overrides.get("directory", str(defaults.overrides_dir))),
            overrides_file=optional_path(overrides.get("file")),
            centerlines_kml=Path(sources.get("centerlines_kml", defaults.centerlines_kml)).expanduser(),
            requests_tsv=Path(sources.get("requests_tsv", defaults.requests_tsv)).expanduser(),
            color_stops=list(export.get("color_stops", defaults.color_stops)),
            color_count=int(export.get("color_count", defaults.color_count)),
            line_width=int(export.get("line_width", defaults.line_width)),
            log_level=str(config.get("logging", {}).get("level", defaults.log_level)).upper(),
        )

    def save_example_config(self, output_path: Path) -> None:
        """Save an example configuration file."""
        example_config = CalmmapConfig().to_dict()
        example_config["database"]["path"] = "${CALMMAP_DB:data.db}"

        with open(output_path, 'w') as f:
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
