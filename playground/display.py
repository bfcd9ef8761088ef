"""Terminal display for diagnostics and tree inspection.

All diagnostic output of the core (expression failures, rejected imports,
propagation traces) goes through a shared Rich console on stderr.

Usage:
    from playground.display import get_display

    display = get_display()
    display.print_warning("Condition failed, keeping item")
    display.print_tree(store.state.tree)

To enable trace output:
    Display.verbose = True
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

if TYPE_CHECKING:
    from .nodes import Node


# Shared console instance
console = Console(stderr=True)


class StatusIcons:
    """Status icons with colors."""

    HAS_CONTEXT = "[green][bold]●[/bold][/green]"
    NO_CONTEXT = "[dim]○[/dim]"
    WARNING = "[yellow][bold]![/bold][/yellow]"
    ERROR = "[red][bold]✗[/bold][/red]"


def _preview(value: Any, limit: int = 60) -> str:
    """Compact single-line preview of a JSON value."""
    try:
        text = json.dumps(value, default=str)
    except (TypeError, ValueError):
        text = str(value)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


class Display:
    """Singleton wrapper around the shared console."""

    # Global switch - set before creating instances
    verbose: bool = False

    _instance: Optional["Display"] = None

    @classmethod
    def get_instance(cls) -> "Display":
        """Get or create the singleton display instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (useful for testing)."""
        cls._instance = None

    def __init__(self, output: Optional[Console] = None) -> None:
        self.console = output or console

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def print_warning(self, message: str) -> None:
        self.console.print(f"{StatusIcons.WARNING} [yellow]Warning: {escape(message)}[/yellow]")

    def print_error(self, message: str) -> None:
        self.console.print(f"{StatusIcons.ERROR} [red]Error: {escape(message)}[/red]")

    def print_info(self, message: str) -> None:
        self.console.print(escape(message))

    def print_debug(self, message: str) -> None:
        """Print a trace line, only in verbose mode."""
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    # =========================================================================
    # Tree inspection
    # =========================================================================

    def build_tree(self, nodes: Sequence["Node"], show_context: bool = False) -> Tree:
        """Build a Rich tree of the component forest."""
        root = Tree(f"[bold]Components[/bold] ({len(nodes)} roots)")
        for node in nodes:
            self._add_branch(root, node, show_context)
        return root

    def _add_branch(self, parent: Tree, node: "Node", show_context: bool) -> None:
        icon = StatusIcons.HAS_CONTEXT if node.has_context else StatusIcons.NO_CONTEXT
        label = f"{icon} [cyan]{escape(node.type)}[/cyan] [dim]{escape(node.id)}[/dim]"
        if node.context_path is not None:
            label += f" path=[magenta]{escape(node.context_path or '(full)')}[/magenta]"
        if node.api_binding is not None and node.api_binding.enabled:
            label += f" [blue]{node.api_binding.method} {escape(node.api_binding.url)}[/blue]"
        if show_context and node.has_context:
            label += f"\n[dim]{escape(_preview(node.context_data))}[/dim]"
        branch = parent.add(label)
        for child in node.children:
            self._add_branch(branch, child, show_context)

    def print_tree(self, nodes: Sequence["Node"], show_context: bool = False) -> None:
        self.console.print(self.build_tree(nodes, show_context))

    def print_context_report(self, node: "Node") -> None:
        """Show what context data a node and each of its children carry."""
        status = "Has Context" if node.has_context else "No Context"
        report = Tree(f"[bold]{escape(node.type)} Context[/bold] ({status})")
        if node.context_path:
            report.add(f"Path: [magenta]{escape(node.context_path)}[/magenta]")
        if node.has_context:
            report.add(f"Context Data: {escape(_preview(node.context_data, 200))}")
        if node.children:
            children = report.add("Children:")
            for child in node.children:
                marker = "Has context" if child.has_context else "No context"
                icon = StatusIcons.HAS_CONTEXT if child.has_context else StatusIcons.NO_CONTEXT
                children.add(
                    f"{icon} {escape(child.type)} "
                    f"({escape(child.context_path or 'no path')}) {marker}"
                )
        self.console.print(report)


# Convenience function to get the display
def get_display() -> Display:
    """Get the display instance."""
    return Display.get_instance()
