"""specgraph - spec relationship graph and validation engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("specgraph")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

from specgraph.core.cycles import find_cycles, mark_cycles
from specgraph.core.graph import build_graph
from specgraph.core.models import Link, LinkType, Severity, Spec
from specgraph.core.reachability import downstream, highlight_chain, upstream
from specgraph.core.references import find_broken_links
from specgraph.core.suggestions import suggest_links
from specgraph.core.validation import validate_spec

__all__ = [
    "__version__",
    "Link",
    "LinkType",
    "Severity",
    "Spec",
    "build_graph",
    "downstream",
    "find_broken_links",
    "find_cycles",
    "highlight_chain",
    "mark_cycles",
    "suggest_links",
    "upstream",
    "validate_spec",
]
