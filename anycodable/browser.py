"""Terminal browser for AnyValue documents.

Usage: python -m anycodable browse path/to/document.json
"""

from __future__ import annotations

from typing import Any

from rich.text import Text
from rich.tree import Tree as RichTree
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Static, Tree
from textual.widgets.tree import TreeNode

from .errors import format_path
from .value import AnyValue, Kind


def node_label(key: Any, value: AnyValue) -> Text:
    """One-line label: containers show their size, scalars their rendering."""
    text = Text()
    if key is not None:
        text.append(str(key), style="bold")
        text.append(": ")
    if value.kind is Kind.DICTIONARY:
        text.append(f"dictionary ({len(value.dictionary_value)} entries)", style="cyan")
    elif value.kind is Kind.ARRAY:
        text.append(f"array ({len(value.array_value)} elements)", style="cyan")
    else:
        text.append(repr(value))
    return text


def children(value: AnyValue) -> list[tuple[Any, AnyValue]]:
    if value.kind is Kind.DICTIONARY:
        return list(value.dictionary_value.items())
    if value.kind is Kind.ARRAY:
        return list(enumerate(value.array_value))
    return []


def detail_for(path: tuple, value: AnyValue) -> str:
    """Text shown in the detail pane for the node at *path*."""
    lines = [f"path: {format_path(path)}", f"kind: {value.kind.value}"]
    if value.kind in (Kind.DICTIONARY, Kind.ARRAY):
        lines.append(f"size: {len(children(value))}")
    else:
        lines.append(f"value: {value!r}")
    return "\n".join(lines)


def rich_tree(value: AnyValue, label: str = "root") -> RichTree:
    """Build a ``rich`` tree of *value* for printing to a console."""
    root = RichTree(node_label(label, value))
    stack = [(root, value)]
    while stack:
        branch, current = stack.pop()
        for key, child in children(current):
            stack.append((branch.add(node_label(key, child)), child))
    return root


class DocumentBrowser(App):
    """Tree view of a document with a detail pane for the highlighted node."""

    CSS = """
    Screen {
        layout: horizontal;
    }

    #document-tree {
        width: 2fr;
        height: 1fr;
        border-right: solid $primary;
    }

    #detail {
        width: 1fr;
        height: 1fr;
        padding: 1;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("e", "expand_all", "Expand"),
        Binding("c", "collapse_all", "Collapse"),
    ]

    def __init__(self, value: AnyValue, source: str = "document"):
        super().__init__()
        self.value = value
        self.source = source
        self.detail_text = detail_for((), value)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Tree(node_label(None, self.value), data=((), self.value), id="document-tree")
        yield Static(self.detail_text, id="detail", markup=False)
        yield Footer()

    def on_mount(self) -> None:
        """Populate the tree from the document."""
        self.title = f"anycodable - {self.source}"
        tree = self.query_one("#document-tree", Tree)
        self._populate(tree.root)
        tree.root.expand()

    def _populate(self, root: TreeNode) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            path, value = node.data
            for key, child in children(value):
                data = (path + (key,), child)
                if child.kind in (Kind.DICTIONARY, Kind.ARRAY):
                    stack.append(node.add(node_label(key, child), data=data))
                else:
                    node.add_leaf(node_label(key, child), data=data)

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        """Show details of the highlighted node."""
        if event.node.data is None:
            return
        path, value = event.node.data
        self.detail_text = detail_for(path, value)
        self.query_one("#detail", Static).update(self.detail_text)

    def action_expand_all(self) -> None:
        self.query_one("#document-tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#document-tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()
