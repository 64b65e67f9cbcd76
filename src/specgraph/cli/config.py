"""CLI configuration and snapshot resolution."""

from pathlib import Path
from typing import Optional

from specgraph.config import EngineConfig, get_config
from specgraph.core.errors import SnapshotLoadError
from specgraph.core.snapshot import Snapshot, load_snapshot

DEFAULT_SNAPSHOT_NAMES = ("specgraph.json", ".specgraph.json")


class CLIContext:
    """CLI execution context with resolved configuration.

    Holds the effective configuration for a CLI command, including any
    overrides from command-line options.
    """

    def __init__(
        self,
        snapshot_path: Optional[str] = None,
        config: Optional[EngineConfig] = None,
    ):
        self._snapshot_override = snapshot_path
        self._config = config or get_config()
        self._snapshot: Optional[Snapshot] = None

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def snapshot_path(self) -> Optional[Path]:
        """Resolved snapshot file.

        Resolution order:
        1. CLI --snapshot option (highest priority)
        2. EngineConfig.snapshot_path (from env/TOML)
        3. specgraph.json / .specgraph.json in the working directory
        """
        if self._snapshot_override:
            return Path(self._snapshot_override)
        if self._config.snapshot_path:
            return self._config.snapshot_path
        for name in DEFAULT_SNAPSHOT_NAMES:
            if Path(name).is_file():
                return Path(name)
        return None

    def require_snapshot(self) -> Snapshot:
        """Load (once) and return the snapshot.

        Raises:
            SnapshotLoadError: If no snapshot is configured or it cannot be loaded.
        """
        if self._snapshot is None:
            path = self.snapshot_path
            if path is None:
                raise SnapshotLoadError(
                    "No snapshot file found. Use --snapshot or set SPECGRAPH_SNAPSHOT.",
                    code="SNAPSHOT_NOT_FOUND",
                )
            self._snapshot = load_snapshot(path)
        return self._snapshot


def create_context(
    snapshot_path: Optional[str] = None, config_file: Optional[str] = None
) -> CLIContext:
    """Create a CLI context; an explicit config file bypasses the global config."""
    config = EngineConfig.from_env(config_file) if config_file else None
    return CLIContext(snapshot_path=snapshot_path, config=config)
