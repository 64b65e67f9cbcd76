"""
Engine configuration for specgraph.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (specgraph.toml)
3. Default values (lowest priority)

Environment variables:
- SPECGRAPH_CONFIG_FILE: Path to TOML config file
- SPECGRAPH_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- SPECGRAPH_LOG_FORMAT: "structured" (JSON lines) or "human"
- SPECGRAPH_SNAPSHOT: Path to the snapshot JSON file used by the CLI
- SPECGRAPH_CYCLE_EDGE_TYPES: Comma-separated link types used for cycle detection
- SPECGRAPH_REQUIRED_SECTIONS: Comma-separated section headings every spec needs
- SPECGRAPH_MIN_CONTENT_LENGTH: Content shorter than this gets a suggestion
- SPECGRAPH_SUGGESTION_LIMIT: Maximum number of link suggestions returned
- SPECGRAPH_SUGGESTION_MIN_CONFIDENCE: Suggestions at or below this are dropped
"""

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version as get_package_version
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from specgraph.core.models import LinkType


logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("specgraph")
    except PackageNotFoundError:
        return "0.1.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()

DEFAULT_REQUIRED_SECTIONS = ("Objective", "Acceptance Criteria")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_link_types(values: Any) -> Tuple[LinkType, ...]:
    if isinstance(values, str):
        values = _split_csv(values)
    parsed = []
    for value in values:
        try:
            parsed.append(LinkType(str(value).strip().lower()))
        except ValueError:
            logger.warning(
                "Ignoring unknown link type '%s'. Valid options: %s",
                value,
                ", ".join(t.value for t in LinkType),
            )
    return tuple(parsed) or (LinkType.DEPENDS_ON,)


@dataclass
class GraphConfig:
    """Graph analysis settings.

    Attributes:
        cycle_edge_types: Link types whose edges participate in cycle
            detection and reachability
    """

    cycle_edge_types: Tuple[LinkType, ...] = (LinkType.DEPENDS_ON,)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "GraphConfig":
        """Create config from TOML dict (typically [graph] section)."""
        return cls(
            cycle_edge_types=_parse_link_types(data.get("cycle_edge_types", ["depends_on"])),
        )


@dataclass
class ValidationConfig:
    """Validation rule settings.

    Attributes:
        required_sections: Level-2 headings every spec must contain
        min_content_length: Content shorter than this gets a suggestion
        cycle_edge_types: Link types the circular-dependency rule follows
    """

    required_sections: Tuple[str, ...] = DEFAULT_REQUIRED_SECTIONS
    min_content_length: int = 200
    cycle_edge_types: Tuple[LinkType, ...] = (LinkType.DEPENDS_ON,)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "ValidationConfig":
        """Create config from TOML dict (typically [validation] section)."""
        sections = data.get("required_sections", list(DEFAULT_REQUIRED_SECTIONS))
        if isinstance(sections, str):
            sections = _split_csv(sections)
        return cls(
            required_sections=tuple(str(s) for s in sections),
            min_content_length=int(data.get("min_content_length", 200)),
        )


@dataclass
class SuggestionConfig:
    """Link suggestion scoring.

    The weights are tunable defaults; confidence is the sum of the weights
    of the signals that matched, capped at 1.0.
    """

    limit: int = 8
    min_confidence: float = 0.0
    mention_weight: float = 0.5
    title_weight: float = 0.3
    tag_weight: float = 0.2
    title_overlap_threshold: float = 0.5

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "SuggestionConfig":
        """Create config from TOML dict (typically [suggestions] section)."""
        return cls(
            limit=int(data.get("limit", 8)),
            min_confidence=float(data.get("min_confidence", 0.0)),
            mention_weight=float(data.get("mention_weight", 0.5)),
            title_weight=float(data.get("title_weight", 0.3)),
            tag_weight=float(data.get("tag_weight", 0.2)),
            title_overlap_threshold=float(data.get("title_overlap_threshold", 0.5)),
        )


@dataclass
class EngineConfig:
    """Engine configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "structured"

    graph: GraphConfig = field(default_factory=GraphConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    suggestions: SuggestionConfig = field(default_factory=SuggestionConfig)

    # Snapshot file used by the CLI
    snapshot_path: Optional[Path] = None

    # MCP server identity
    server_name: str = "specgraph"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "EngineConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("SPECGRAPH_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["specgraph.toml", ".specgraph.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()
        config._sync_cycle_edge_types()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = str(log["level"]).upper()
            if "format" in log:
                self.log_format = str(log["format"]).lower()
            elif "structured" in log:
                self.log_format = "structured" if _parse_bool(log["structured"]) else "human"

        if "snapshot" in data and "path" in data["snapshot"]:
            self.snapshot_path = Path(data["snapshot"]["path"])

        if "server" in data:
            srv = data["server"]
            if "name" in srv:
                self.server_name = srv["name"]

        if "graph" in data:
            self.graph = GraphConfig.from_toml_dict(data["graph"])

        if "validation" in data:
            self.validation = ValidationConfig.from_toml_dict(data["validation"])

        if "suggestions" in data:
            self.suggestions = SuggestionConfig.from_toml_dict(data["suggestions"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("SPECGRAPH_LOG_LEVEL"):
            self.log_level = level.upper()

        if log_format := os.environ.get("SPECGRAPH_LOG_FORMAT"):
            self.log_format = log_format.lower()

        if snapshot := os.environ.get("SPECGRAPH_SNAPSHOT"):
            self.snapshot_path = Path(snapshot)

        if edge_types := os.environ.get("SPECGRAPH_CYCLE_EDGE_TYPES"):
            self.graph.cycle_edge_types = _parse_link_types(edge_types)

        if sections := os.environ.get("SPECGRAPH_REQUIRED_SECTIONS"):
            self.validation.required_sections = _split_csv(sections)

        if min_length := os.environ.get("SPECGRAPH_MIN_CONTENT_LENGTH"):
            try:
                self.validation.min_content_length = int(min_length)
            except ValueError:
                pass

        if limit := os.environ.get("SPECGRAPH_SUGGESTION_LIMIT"):
            try:
                self.suggestions.limit = int(limit)
            except ValueError:
                pass

        if min_confidence := os.environ.get("SPECGRAPH_SUGGESTION_MIN_CONFIDENCE"):
            try:
                self.suggestions.min_confidence = float(min_confidence)
            except ValueError:
                pass

    def _sync_cycle_edge_types(self) -> None:
        # The circular-dependency rule must agree with the graph analysis.
        self.validation.cycle_edge_types = self.graph.cycle_edge_types

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        from specgraph.core.logging_config import configure_logging

        configure_logging(level=self.log_level, format=self.log_format)


# Global configuration instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def set_config(config: Optional[EngineConfig]) -> None:
    """Set (or reset, with None) the global configuration instance."""
    global _config
    _config = config
