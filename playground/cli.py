"""
Playground CLI

Inspect and preview exported component trees from the terminal.

Usage:
    playground show tree.json --context
    playground preview tree.json
    playground validate tree.json
    playground eval "item.active && item.count > 2" --item '{"active": true, "count": 3}'
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.console import Console

from .conditions import get_evaluator
from .config import PlaygroundConfig, load_config
from .display import Display, get_display
from .errors import ConfigError, ImportFormatError
from .iteration import expand_tree
from .nodes import Node
from .propagation import propagate_tree
from .serialization import parse_document, read_document, validate_document

# Command results go to stdout; diagnostics go to the display (stderr)
output = Console()


def _load_tree(file_path: str) -> List[Node]:
    """Read and parse a document, exiting with the violations on failure."""
    try:
        return parse_document(read_document(Path(file_path))).tree
    except ImportFormatError as e:
        get_display().print_error(str(e))
        sys.exit(1)


def cmd_show(args: argparse.Namespace, config: PlaygroundConfig) -> None:
    tree = propagate_tree(_load_tree(args.file), config.propagation)
    get_display().print_tree(tree, show_context=args.context)


def cmd_preview(args: argparse.Namespace, config: PlaygroundConfig) -> None:
    tree = propagate_tree(_load_tree(args.file), config.propagation)
    expanded = expand_tree(tree, config)
    output.print_json(json.dumps([node.to_dict() for node in expanded]))


def cmd_validate(args: argparse.Namespace, config: PlaygroundConfig) -> None:
    try:
        document = read_document(Path(args.file))
    except ImportFormatError as e:
        get_display().print_error(str(e))
        sys.exit(1)

    errors = validate_document(document)
    if errors:
        get_display().print_error(f"{args.file} is not a valid playground document")
        for error in errors:
            get_display().print_info(f"  - {error}")
        sys.exit(1)

    count = len(document) if isinstance(document, list) else len(document["components"])
    get_display().print_info(f"{args.file} is valid ({count} root components)")


def cmd_eval(args: argparse.Namespace, config: PlaygroundConfig) -> None:
    try:
        item: Any = json.loads(args.item)
    except json.JSONDecodeError as e:
        get_display().print_error(f"--item is not valid JSON: {e}")
        sys.exit(1)

    result = get_evaluator(args.var).check(args.condition, item)
    output.print("true" if result.satisfied else "false", highlight=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playground",
        description="Inspect, validate and preview component trees",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    playground show tree.json --context
    playground preview tree.json
    playground validate tree.json
    playground eval "item.price > 10" --item '{"price": 12}'
        """,
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a config file (default: .playground/config.yml if present)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Show propagation and expansion traces",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Print the component tree")
    show.add_argument("file", help="Exported tree (JSON)")
    show.add_argument(
        "--context", action="store_true", default=False, help="Include context data previews"
    )
    show.set_defaults(func=cmd_show)

    preview = subparsers.add_parser("preview", help="Print the expanded render tree as JSON")
    preview.add_argument("file", help="Exported tree (JSON)")
    preview.set_defaults(func=cmd_preview)

    validate = subparsers.add_parser("validate", help="Validate a serialized tree")
    validate.add_argument("file", help="Exported tree (JSON)")
    validate.set_defaults(func=cmd_validate)

    evaluate = subparsers.add_parser("eval", help="Evaluate a condition against one item")
    evaluate.add_argument("condition", help="Condition expression, e.g. \"item.active\"")
    evaluate.add_argument("--item", default="null", help="Item as JSON (default: null)")
    evaluate.add_argument(
        "--var", default="item", help="Variable name bound to the item (default: item)"
    )
    evaluate.set_defaults(func=cmd_eval)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        get_display().print_error(str(e))
        sys.exit(1)

    # Configure display before any output
    Display.verbose = args.verbose or config.display.verbose
    Display.reset()

    args.func(args, config)


if __name__ == "__main__":
    main()
