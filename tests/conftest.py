"""
Root pytest configuration and shared fixtures.

Snapshots are built from small helper factories so individual tests only
spell out the fields they care about.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pytest

from specgraph.config import set_config
from specgraph.core.models import Link, LinkType, Spec

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"

# Content that passes every content rule with the default configuration.
GOOD_CONTENT = """# Overview

**Estimated Context:** ~10% of Sonnet window

## Objective

Describe the relationship between documents so that authors can see how the
pieces of the system fit together before they start writing code for it.

## Acceptance Criteria

- [ ] Every document is listed with its relations
- [x] Broken relations are reported to the author
"""


def make_spec(
    spec_id: str,
    dependencies: Iterable[str] = (),
    *,
    title: Optional[str] = None,
    status: Any = "planned",
    phase: Any = 1,
    tags: Iterable[str] = (),
    content: str = GOOD_CONTENT,
) -> Spec:
    """Build a Spec that is valid unless a test overrides a field."""
    return Spec(
        id=spec_id,
        title=f"Document {spec_id}" if title is None else title,
        status=status,
        phase=phase,
        dependencies=tuple(dependencies),
        tags=frozenset(tags),
        content=content,
    )


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the process-wide config from leaking between tests."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def chain_specs() -> List[Spec]:
    """1 <- 2 <- 3, with 3 also depending on 1 directly."""
    return [
        make_spec("1"),
        make_spec("2", ["1"]),
        make_spec("3", ["1", "2"]),
    ]


@pytest.fixture
def cyclic_specs() -> List[Spec]:
    """1 -> 2 -> 3 -> 1."""
    return [
        make_spec("1", ["2"]),
        make_spec("2", ["3"]),
        make_spec("3", ["1"]),
    ]


@pytest.fixture
def related_links() -> List[Link]:
    return [
        Link(source="1", target="3", type=LinkType.RELATED),
        Link(source="3", target="1", type=LinkType.RELATED),
    ]


@pytest.fixture
def snapshot_data(chain_specs) -> Dict[str, Any]:
    return {
        "specs": [spec.to_dict() for spec in chain_specs],
        "links": [{"source": "3", "target": "1", "type": "related"}],
        "dismissed": {"3": ["2"]},
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data) -> Path:
    path = tmp_path / "specgraph.json"
    path.write_text(json.dumps(snapshot_data, indent=2))
    return path


@pytest.fixture
def spec_factory():
    """The ``make_spec`` helper, for tests that build their own snapshots."""
    return make_spec


@pytest.fixture
def good_content() -> str:
    return GOOD_CONTENT
