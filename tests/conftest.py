"""
Shared test fixtures and configuration for pytest.
"""

import copy
import logging
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from flowstore.config.settings import StorageSettings, resolve_paths


logger = logging.getLogger(__name__)


# ============================================================================
# Reference data
# ============================================================================

REFERENCE_NODE: Dict[str, Any] = {
    "id": "c0bd346c54d153d9",
    "type": "function",
    "z": "66d84716f9f936a2",
    "name": "function abc",
    "outputs": 2,
    "noerr": 0,
    "initialize": "// Code added here will be run once\n// whenever the node is started.\nconsole.log('int')",
    "finalize": "// Code added here will be run when the\n// node is being stopped or re-deployed.\nconsole.log('fin')",
    "func": "return msg;",
    "libs": [
        {
            "var": "moment",
            "module": "moment",
        },
    ],
    "x": 520,
    "y": 320,
    "wires": [[], []],
    "info": 'const a = "b" escaped\n${extra} escaped\n`${variable}` escaped\n\\n not new line',
}

REFERENCE_DOCUMENT = r"""const Node = {
  "id": "c0bd346c54d153d9",
  "type": "function",
  "z": "66d84716f9f936a2",
  "name": "function abc",
  "outputs": 2,
  "noerr": 0,
  "initialize": "",
  "finalize": "",
  "func": "",
  "libs": [
    {
      "var": "moment",
      "module": "moment"
    }
  ],
  "x": 520,
  "y": 320,
  "wires": [
    [],
    []
  ],
  "info": ""
}

Node.info = `
const a = "b" escaped
\${extra} escaped
\`\${variable}\` escaped
\\n not new line
`

Node.initialize = async function (node, msg, RED, context, flow, global, env, util, moment) {
  // Code added here will be run once
  // whenever the node is started.
  console.log('int')
}

Node.func = async function (node, msg, RED, context, flow, global, env, util, moment) {
  return msg;
}

Node.finalize = async function (node, msg, RED, context, flow, global, env, util, moment) {
  // Code added here will be run when the
  // node is being stopped or re-deployed.
  console.log('fin')
}

module.exports = Node;"""


def make_node(node_id: str, node_type: str = "inject", **fields: Any) -> Dict[str, Any]:
    """Build a minimal node record."""
    node = {"id": node_id, "type": node_type}
    node.update(fields)
    return node


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def reference_node() -> Dict[str, Any]:
    """A function node exercising text, script and library fields."""
    return copy.deepcopy(REFERENCE_NODE)


@pytest.fixture
def reference_document() -> str:
    """The node file expected for reference_node."""
    return REFERENCE_DOCUMENT


@pytest.fixture
def sample_flows():
    """A small flows collection: a tab, a function node and a debug node."""
    return [
        make_node("f1", "tab", label="Flow 1", disabled=False, info=""),
        make_node("n1", "function", z="f1", func="return msg;", outputs=1, wires=[["n2"]]),
        make_node("n2", "debug", z="f1", active=True, wires=[]),
    ]


@pytest.fixture
def node_dir(tmp_path: Path) -> Path:
    """An empty node file directory."""
    directory = tmp_path / "flows_js"
    directory.mkdir()
    return directory


@pytest.fixture
def storage_settings(tmp_path: Path):
    """Factory for resolved settings rooted in a temporary user directory."""
    user_dir = tmp_path / "user"
    user_dir.mkdir()

    def _make(**fields: Any) -> StorageSettings:
        fields.setdefault("user_dir", str(user_dir))
        fields.setdefault("flow_file", "flows.json")
        return resolve_paths(
            StorageSettings(**fields),
            env={},
            cwd=tmp_path / "cwd",
            hostname="testhost",
        )

    return _make
