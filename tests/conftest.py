"""Shared test fixtures and configuration."""

from typing import Any, Dict, List

import pytest
from unittest.mock import MagicMock, patch

from playground.display import Display
from playground.nodes import Node


@pytest.fixture(autouse=True)
def mock_display():
    """Auto-mock the display for all tests.

    Every module reaches the display through Display.get_instance(), so
    patching it prevents terminal output and lets tests assert on warnings.
    """
    mock = MagicMock()
    mock.console = MagicMock()

    with patch("playground.display.Display.get_instance", return_value=mock):
        yield mock

    Display.verbose = False
    Display.reset()


@pytest.fixture
def make_node():
    """Factory for nodes with readable ids."""

    def _make(
        node_id: str,
        node_type: str = "Typography",
        props: Dict[str, Any] = None,
        children: List[Node] = None,
        **fields: Any,
    ) -> Node:
        return Node(
            id=node_id,
            type=node_type,
            props=dict(props or {}),
            children=list(children or []),
            **fields,
        )

    return _make
