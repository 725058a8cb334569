#!/usr/bin/env python3
"""
Basic usage of flatxml: build a document, edit it, and re-indent it.

Writes ``create.xml``, ``modify.xml`` and ``clear_indent.xml`` into the
directory given on the command line (default: the current directory).
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from flatxml import DocumentTree, NodeRecord, parse_file


def create_xml(output: Path) -> None:
    """Create a small document from scratch."""
    print("\n📄 Creating a document")
    print("-" * 30)

    tree = DocumentTree.from_node(NodeRecord.element("ROOT"))
    tree.version = "1.0"
    tree.encoding = "UTF-8"
    tree.standalone = "no"

    root = tree.root()
    tree.append_child_node(root, NodeRecord.element("CHILD-B"))
    child_b = tree.find("//CHILD-B")
    tree.append_next_node(child_b, NodeRecord.element("CHILD-C", text="third"))
    tree.append_previous_node(child_b, NodeRecord.element("CHILD-A", [("id", "a")]))

    child_a = tree.find("//CHILD-A")
    tree.append_child_node(child_a, NodeRecord.element("SUBCHILD-A", text="EAST"))
    tree.append_child_node(child_a, NodeRecord.comment(" generated "))

    tree.pretty("\n  ")
    tree.write_file(output)
    print(tree.to_string())


def modify_xml(source: Path, output: Path) -> None:
    """Copy CHILD-A into CHILD-C with a changed subchild."""
    print("\n✏️  Modifying a document")
    print("-" * 30)

    tree = parse_file(source)
    child_a = tree.find("//CHILD-A")
    subtree = tree.subtree(child_a)

    subchild = subtree.find("/CHILD-A/SUBCHILD-A")
    subtree.node(subchild).text = "WEST"
    subtree.node(subtree.root()).set_attr("id", "copy")

    child_c = tree.find("//CHILD-C")
    tree.append_child_tree(child_c, subtree)
    tree.pretty(tree.newline + tree.indent)
    tree.write_file(output)
    print(tree.to_string())

    for pos in tree.find_iter("//SUBCHILD-A"):
        print(f"  SUBCHILD-A at {pos}: {tree.node(pos).text}")


def clear_indent(source: Path, output: Path) -> None:
    """Strip all indentation."""
    print("\n🧹 Clearing indentation")
    print("-" * 30)

    tree = parse_file(source)
    previous = tree.noindent()
    tree.write_file(output)
    print(tree.to_string())
    print(f"\n  previous indent: {previous!r}")


def main():
    """Main function."""
    directory = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.cwd()
    created = directory / "create.xml"
    modified = directory / "modify.xml"

    create_xml(created)
    modify_xml(created, modified)
    clear_indent(modified, directory / "clear_indent.xml")

    print("\n✅ All examples completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
