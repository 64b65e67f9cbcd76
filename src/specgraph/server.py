"""FastMCP server for specgraph.

Exposes a single ``specgraph(action=...)`` tool. The snapshot travels with
each call (inline ``snapshot`` object or ``snapshot_path``), so the server
holds no state between calls.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Optional

from mcp.server.fastmcp import FastMCP

from specgraph.config import EngineConfig, get_config
from specgraph.core.context import sync_request_context
from specgraph.core.cycles import detect_and_mark, format_cycle
from specgraph.core.errors import ContractViolationError, SnapshotLoadError
from specgraph.core.graph import build_graph, dependency_depth, direct_dependents
from specgraph.core.models import Severity, id_sort_key
from specgraph.core.reachability import downstream, upstream
from specgraph.core.references import find_all_broken_links, find_broken_links
from specgraph.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    internal_error,
    spec_not_found_error,
    success_response,
    validation_error,
)
from specgraph.core.snapshot import Snapshot, load_snapshot, snapshot_from_dict
from specgraph.core.suggestions import suggest_links
from specgraph.core.validation import fixable_issues, validate_snapshot, validate_spec

logger = logging.getLogger(__name__)

Handler = Callable[..., dict]


@dataclass(frozen=True)
class ActionDefinition:
    name: str
    handler: Handler
    summary: str
    needs_spec_id: bool = False


def _handle_graph(*, config: EngineConfig, snapshot: Snapshot, payload: Dict[str, Any]) -> dict:
    graph, cycles = detect_and_mark(
        build_graph(snapshot.specs, snapshot.links), config.graph.cycle_edge_types
    )
    return asdict(
        success_response(
            {**graph.to_dict(), "summary": graph.summary(), "cycle_count": len(cycles)}
        )
    )


def _handle_cycles(*, config: EngineConfig, snapshot: Snapshot, payload: Dict[str, Any]) -> dict:
    _, cycles = detect_and_mark(
        build_graph(snapshot.specs, snapshot.links), config.graph.cycle_edge_types
    )
    return asdict(
        success_response(
            cycles=[{"nodes": list(cycle), "path": format_cycle(cycle)} for cycle in cycles],
            count=len(cycles),
        )
    )


def _handle_chain(*, config: EngineConfig, snapshot: Snapshot, payload: Dict[str, Any]) -> dict:
    node_id = payload["spec_id"]
    graph = build_graph(snapshot.specs, snapshot.links)
    if node_id not in graph:
        return asdict(spec_not_found_error(node_id))

    edge_types = config.graph.cycle_edge_types
    ancestors = upstream(graph, node_id, edge_types)
    descendants = downstream(graph, node_id, edge_types)
    return asdict(
        success_response(
            node_id=node_id,
            upstream=sorted(ancestors, key=id_sort_key),
            downstream=sorted(descendants, key=id_sort_key),
            chain=sorted(ancestors | descendants, key=id_sort_key),
            dependents=direct_dependents(graph, node_id),
            depth=dependency_depth(graph, node_id),
        )
    )


def _handle_validate(*, config: EngineConfig, snapshot: Snapshot, payload: Dict[str, Any]) -> dict:
    spec_id = payload.get("spec_id")
    if not spec_id:
        report = validate_snapshot(snapshot.specs, config=config.validation)
        return asdict(success_response(report.to_dict()))

    spec = snapshot.get_spec(spec_id)
    if spec is None:
        return asdict(spec_not_found_error(spec_id))
    issues = validate_spec(spec, snapshot.specs, config=config.validation)
    return asdict(
        success_response(
            spec_id=spec_id,
            is_valid=not any(issue.severity == Severity.ERROR for issue in issues),
            issue_count=len(issues),
            fixable_count=len(fixable_issues(issues)),
            issues=[issue.to_dict() for issue in issues],
        )
    )


def _handle_suggest(*, config: EngineConfig, snapshot: Snapshot, payload: Dict[str, Any]) -> dict:
    spec_id = payload["spec_id"]
    spec = snapshot.get_spec(spec_id)
    if spec is None:
        return asdict(spec_not_found_error(spec_id))

    settings = config.suggestions
    limit = payload.get("limit")
    if limit is not None:
        if limit < 0:
            return asdict(
                validation_error(
                    "limit must be zero or greater", field="limit", details={"limit": limit}
                )
            )
        settings = replace(settings, limit=limit)

    suggestions = suggest_links(
        spec,
        snapshot.specs,
        snapshot.dismissed_for(spec_id),
        links=snapshot.links,
        config=settings,
    )
    return asdict(
        success_response(
            spec_id=spec_id,
            suggestions=[suggestion.to_dict() for suggestion in suggestions],
            count=len(suggestions),
        )
    )


def _handle_broken_links(
    *, config: EngineConfig, snapshot: Snapshot, payload: Dict[str, Any]
) -> dict:
    spec_id = payload.get("spec_id")
    if spec_id:
        spec = snapshot.get_spec(spec_id)
        if spec is None:
            return asdict(spec_not_found_error(spec_id))
        broken = find_broken_links(spec, snapshot.known_ids(), snapshot.specs)
    else:
        broken = find_all_broken_links(snapshot.specs)
    return asdict(
        success_response(broken_links=[link.to_dict() for link in broken], count=len(broken))
    )


_ACTIONS: Dict[str, ActionDefinition] = {
    action.name: action
    for action in (
        ActionDefinition("graph", _handle_graph, "Build the graph with cycles flagged"),
        ActionDefinition("cycles", _handle_cycles, "List dependency cycles"),
        ActionDefinition(
            "chain", _handle_chain, "Upstream/downstream chain of a spec", needs_spec_id=True
        ),
        ActionDefinition("validate", _handle_validate, "Validate one spec or the snapshot"),
        ActionDefinition(
            "suggest", _handle_suggest, "Suggest links for a spec", needs_spec_id=True
        ),
        ActionDefinition("broken-links", _handle_broken_links, "Find unresolved references"),
    )
}


def _resolve_snapshot(
    snapshot: Optional[Dict[str, Any]], snapshot_path: Optional[str], config: EngineConfig
) -> Snapshot:
    if snapshot is not None:
        return snapshot_from_dict(snapshot, source="<inline>")
    path = snapshot_path or config.snapshot_path
    if not path:
        raise SnapshotLoadError(
            "Provide a snapshot object or snapshot_path", code="MISSING_REQUIRED"
        )
    return load_snapshot(path)


def dispatch_action(
    *,
    action: str,
    payload: Dict[str, Any],
    config: EngineConfig,
) -> dict:
    """
    Route one tool call to its handler and return a response-v2 dict.

    Payload keys: ``snapshot`` (inline object), ``snapshot_path``,
    ``spec_id`` and ``limit``.
    """
    definition = _ACTIONS.get(action)
    if definition is None:
        allowed = ", ".join(_ACTIONS)
        return asdict(
            error_response(
                f"Unsupported specgraph action '{action}'. Allowed actions: {allowed}",
                error_code=ErrorCode.UNKNOWN_ACTION,
                error_type=ErrorType.VALIDATION,
                remediation=f"Use one of: {allowed}",
            )
        )

    if definition.needs_spec_id and not payload.get("spec_id"):
        return asdict(
            error_response(
                f"spec_id is required for action '{action}'",
                error_code=ErrorCode.MISSING_REQUIRED,
                error_type=ErrorType.VALIDATION,
            )
        )

    try:
        snapshot = _resolve_snapshot(payload.get("snapshot"), payload.get("snapshot_path"), config)
    except SnapshotLoadError as exc:
        return asdict(
            error_response(
                str(exc),
                error_code=exc.code,
                error_type=(
                    ErrorType.NOT_FOUND if exc.code == "SNAPSHOT_NOT_FOUND" else ErrorType.VALIDATION
                ),
                remediation="Pass a snapshot object with a 'specs' list, or a readable snapshot_path.",
                details={"path": exc.path} if exc.path else None,
            )
        )

    try:
        return definition.handler(config=config, snapshot=snapshot, payload=payload)
    except ContractViolationError as exc:
        logger.error("Contract violation in action %s: %s", action, exc)
        return asdict(
            error_response(
                str(exc),
                error_code=ErrorCode.CONTRACT_VIOLATION,
                error_type=ErrorType.INTERNAL,
            )
        )


def register_specgraph_tool(mcp: FastMCP, config: EngineConfig) -> None:
    """Register the consolidated specgraph tool."""

    @mcp.tool(name="specgraph")
    def specgraph(
        action: str,
        snapshot: Optional[Dict[str, Any]] = None,
        snapshot_path: Optional[str] = None,
        spec_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> dict:
        """Spec graph analysis, validation and link suggestions.

        Actions: graph, cycles, chain (spec_id), validate ([spec_id]),
        suggest (spec_id, [limit]), broken-links ([spec_id]).
        """
        payload = {
            "snapshot": snapshot,
            "snapshot_path": snapshot_path,
            "spec_id": spec_id,
            "limit": limit,
        }
        with sync_request_context(operation=f"specgraph.{action}") as ctx:
            try:
                return dispatch_action(action=action, payload=payload, config=config)
            except Exception:
                logger.exception("Unhandled error in action %s", action)
                return asdict(internal_error(request_id=ctx.correlation_id))


def create_server(config: Optional[EngineConfig] = None) -> FastMCP:
    """Create and configure the FastMCP server instance."""
    if config is None:
        config = get_config()

    config.setup_logging()

    mcp = FastMCP(name=config.server_name)
    register_specgraph_tool(mcp, config)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the specgraph MCP server."""
    try:
        config = get_config()
        server = create_server(config)
        logger.info("Starting %s v%s", config.server_name, config.server_version)
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
