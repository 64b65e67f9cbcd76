"""
Snapshot files consumed by the CLI and the MCP tool.

A snapshot is a JSON object::

    {
        "specs": [{"id": "1", "title": "...", "dependencies": [], ...}],
        "links": [{"source": "2", "target": "1", "type": "related"}],
        "dismissed": {"2": ["5"]}
    }

Only ``specs`` is required. Malformed spec *values* (bad status, phase out
of range) load fine and are reported by validation; a file that is not a
snapshot at all raises SnapshotLoadError.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from specgraph.core.errors import SnapshotLoadError
from specgraph.core.models import Link, Spec

logger = logging.getLogger(__name__)

_SNAPSHOT_KEYS = frozenset({"specs", "links", "dismissed"})


@dataclass(frozen=True)
class Snapshot:
    specs: Tuple[Spec, ...] = ()
    links: Tuple[Link, ...] = ()
    dismissed: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    # Top-level keys other than specs/links/dismissed, written back unchanged.
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def get_spec(self, spec_id: str) -> Optional[Spec]:
        """First spec with ``spec_id``, or None."""
        for spec in self.specs:
            if spec.id == spec_id:
                return spec
        return None

    def known_ids(self) -> FrozenSet[str]:
        return frozenset(spec.id for spec in self.specs)

    def dismissed_for(self, spec_id: str) -> FrozenSet[str]:
        return self.dismissed.get(spec_id, frozenset())

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "specs": [spec.to_record() for spec in self.specs],
            "links": [link.to_record() for link in self.links],
            "dismissed": {key: sorted(value) for key, value in self.dismissed.items()},
        }


def snapshot_from_dict(data: Any, *, source: Optional[str] = None) -> Snapshot:
    """
    Build a Snapshot from parsed JSON.

    Raises:
        SnapshotLoadError: If the structure is not a snapshot
    """
    if not isinstance(data, dict):
        raise SnapshotLoadError("Snapshot must be a JSON object", path=source)

    raw_specs = data.get("specs")
    if not isinstance(raw_specs, list):
        raise SnapshotLoadError("Snapshot 'specs' must be a list", path=source)
    raw_links = data.get("links") or []
    if not isinstance(raw_links, list):
        raise SnapshotLoadError("Snapshot 'links' must be a list", path=source)
    raw_dismissed = data.get("dismissed") or {}
    if not isinstance(raw_dismissed, dict):
        raise SnapshotLoadError("Snapshot 'dismissed' must be an object", path=source)

    specs: List[Spec] = []
    for index, item in enumerate(raw_specs):
        if not isinstance(item, dict):
            raise SnapshotLoadError(
                f"specs[{index}] must be an object", path=source, details={"index": index}
            )
        try:
            specs.append(Spec.from_dict(item))
        except TypeError as exc:
            raise SnapshotLoadError(
                f"specs[{index}] is invalid: {exc}",
                path=source,
                details={"index": index},
            ) from exc

    links: List[Link] = []
    for index, item in enumerate(raw_links):
        try:
            links.append(Link.from_dict(item))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise SnapshotLoadError(
                f"links[{index}] is invalid: {exc}",
                path=source,
                details={"index": index},
            ) from exc

    dismissed = {
        str(spec_id): frozenset(str(target) for target in (targets or ()))
        for spec_id, targets in raw_dismissed.items()
    }

    extra = {key: value for key, value in data.items() if key not in _SNAPSHOT_KEYS}
    return Snapshot(
        specs=tuple(specs), links=tuple(links), dismissed=dismissed, extra=extra
    )


def load_snapshot(path: Union[str, Path]) -> Snapshot:
    """
    Read a snapshot JSON file.

    Raises:
        SnapshotLoadError: If the file is missing, unreadable or malformed
    """
    snapshot_path = Path(path)
    if not snapshot_path.is_file():
        raise SnapshotLoadError(
            f"Snapshot file not found: {snapshot_path}",
            path=str(snapshot_path),
            code="SNAPSHOT_NOT_FOUND",
        )

    try:
        with open(snapshot_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise SnapshotLoadError(
            f"Snapshot is not valid JSON: {exc.msg} (line {exc.lineno})",
            path=str(snapshot_path),
        ) from exc
    except OSError as exc:
        raise SnapshotLoadError(
            f"Could not read snapshot: {exc}", path=str(snapshot_path)
        ) from exc

    snapshot = snapshot_from_dict(data, source=str(snapshot_path))
    logger.debug(
        "Loaded snapshot %s: %d spec(s), %d link(s)",
        snapshot_path,
        len(snapshot.specs),
        len(snapshot.links),
    )
    return snapshot


def replace_spec(snapshot: Snapshot, old: Spec, new: Spec) -> Snapshot:
    """Return a snapshot with the first entry equal to ``old`` swapped for ``new``."""
    specs = list(snapshot.specs)
    for index, spec in enumerate(specs):
        if spec == old:
            specs[index] = new
            break
    else:
        specs.append(new)
    return replace(snapshot, specs=tuple(specs))


def save_snapshot(snapshot: Snapshot, path: Union[str, Path]) -> None:
    """Write a snapshot as indented JSON, replacing the file atomically."""
    snapshot_path = Path(path)
    tmp_path = snapshot_path.with_suffix(snapshot_path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, indent=2)
        f.write("\n")
    tmp_path.replace(snapshot_path)
    logger.debug("Saved snapshot %s", snapshot_path)
