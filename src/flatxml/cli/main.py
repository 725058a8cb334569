"""Main CLI entry point for the flatxml command-line tool.

Subcommands:
    query   Evaluate an address against a file and print the matches
    format  Re-indent (or compact) a file
    info    Print declaration, formatting and size facts about a file
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from flatxml import __version__
from flatxml.api.parser import parse_file
from flatxml.shared.config import ConfigError, DocumentConfig
from flatxml.shared.exceptions import FlatXMLError
from flatxml.shared.logging import configure_logging, get_logger
from flatxml.tree.document import DocumentTree

logger = get_logger(__name__, component="cli")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="flatxml",
        description="Query, re-indent and inspect XML documents"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Query command
    query_parser = subparsers.add_parser("query", help="Find nodes matching an address")
    query_parser.add_argument("path", type=Path, help="XML file to query")
    query_parser.add_argument("address", help="Address such as //item[@id='2']")
    query_parser.add_argument(
        "--reverse", "-r",
        action="store_true",
        help="Report matches in reverse document order"
    )
    query_parser.add_argument(
        "--first",
        action="store_true",
        help="Stop after the first match"
    )
    query_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)"
    )

    # Format command
    format_parser = subparsers.add_parser("format", help="Re-indent an XML file")
    format_parser.add_argument("path", type=Path, help="XML file to format")
    indent_group = format_parser.add_mutually_exclusive_group()
    indent_group.add_argument(
        "--indent", "-i",
        default="  ",
        help="Indentation unit; \\t stands for a tab (default: two spaces)"
    )
    indent_group.add_argument(
        "--compact",
        action="store_true",
        help="Remove all indentation"
    )
    format_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )

    # Info command
    info_parser = subparsers.add_parser("info", help="Describe an XML file")
    info_parser.add_argument("path", type=Path, help="XML file to inspect")
    info_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)"
    )

    # Global options
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON configuration file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def load_config(config_path: Optional[Path]) -> DocumentConfig:
    """Load a DocumentConfig from a JSON file, or the defaults."""
    if config_path is None:
        return DocumentConfig()
    return DocumentConfig.from_json(config_path.read_text(encoding="utf-8"))


def describe_match(tree: DocumentTree, pos: int) -> Dict[str, Any]:
    node = tree.node(pos)
    return {
        "position": pos,
        "identity": node.identity,
        "name": node.name,
        "attributes": dict(node.attributes),
        "text": node.text,
    }


def describe_tree(tree: DocumentTree) -> Dict[str, Any]:
    root = tree.root()
    elements = [node for node in tree if node.is_element]
    return {
        "version": tree.version,
        "encoding": tree.encoding,
        "standalone": tree.standalone,
        "newline": tree.newline,
        "indent": tree.indent,
        "root": tree.node(root).name if root is not None else None,
        "nodes": len(tree),
        "elements": len(elements),
        "max_depth": max((node.label.count("#") for node in elements), default=0),
    }


def format_matches(matches: List[Dict[str, Any]], format_type: str) -> str:
    """Format query matches for output."""
    if format_type == "json":
        return json.dumps(matches, indent=2)
    lines = []
    for match in matches:
        attributes = " ".join(f'{key}="{value}"' for key, value in match["attributes"].items())
        head = f"{match['position']}: <{match['name']}{' ' if attributes else ''}{attributes}>"
        text = (match["text"] or "").strip()
        lines.append(f"{head} {text}" if text else head)
    lines.append(f"{len(matches)} match(es)")
    return "\n".join(lines)


def cmd_query(args: argparse.Namespace, config: DocumentConfig) -> int:
    tree = parse_file(args.path, config)
    iterator = tree.rfind_iter(args.address) if args.reverse else tree.find_iter(args.address)
    matches = []
    for pos in iterator:
        matches.append(describe_match(tree, pos))
        if args.first:
            break
    print(format_matches(matches, args.format))
    return 0


def cmd_format(args: argparse.Namespace, config: DocumentConfig) -> int:
    tree = parse_file(args.path, config)
    if args.compact:
        tree.noindent()
    else:
        tree.pretty(args.indent.replace("\\t", "\t"))

    if args.output:
        tree.write_file(args.output)
        print(f"Formatted output written to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(tree.to_string())
    return 0


def cmd_info(args: argparse.Namespace, config: DocumentConfig) -> int:
    facts = describe_tree(parse_file(args.path, config))
    if args.format == "json":
        print(json.dumps(facts, indent=2))
    else:
        for key, value in facts.items():
            print(f"{key}: {value!r}" if isinstance(value, str) else f"{key}: {value}")
    return 0


COMMANDS = {
    "query": cmd_query,
    "format": cmd_format,
    "info": cmd_info,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")

    try:
        config = load_config(args.config)
        if not (args.verbose or args.quiet):
            configure_logging(config.logging_level)
        return COMMANDS[args.command](args, config)
    except (FlatXMLError, ConfigError, OSError) as e:
        logger.debug("Command failed", extra={"command": args.command, "error": str(e)})
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
