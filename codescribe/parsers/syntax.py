"""Tree-sitter adapter for JavaScript and TypeScript sources.

Wraps py-tree-sitter behind a small interface: parse text with the
grammar matching a file, fail with ``SourceParseError`` when the tree
contains syntax errors, and walk the tree yielding only the node kinds
the fact extractor cares about.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

import tree_sitter
import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts

from codescribe.parsers.file_types import is_tsx, is_typescript

logger = logging.getLogger(__name__)


class Grammar(str, Enum):
    """Tree-sitter grammars used for script files."""

    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"


_LANGUAGES = {
    Grammar.JAVASCRIPT: tree_sitter.Language(tsjs.language()),
    Grammar.TYPESCRIPT: tree_sitter.Language(tsts.language_typescript()),
    Grammar.TSX: tree_sitter.Language(tsts.language_tsx()),
}


class NodeKind(Enum):
    """The closed set of syntax node kinds visited by the extractor."""

    IMPORT = "import"
    EXPORT = "export"
    FUNCTION = "function"
    CLASS = "class"
    CALL = "call"
    UI_ELEMENT = "ui_element"


_KIND_BY_TYPE = {
    "import_statement": NodeKind.IMPORT,
    "export_statement": NodeKind.EXPORT,
    "function_declaration": NodeKind.FUNCTION,
    "generator_function_declaration": NodeKind.FUNCTION,
    "class_declaration": NodeKind.CLASS,
    "abstract_class_declaration": NodeKind.CLASS,
    "call_expression": NodeKind.CALL,
    "jsx_element": NodeKind.UI_ELEMENT,
    "jsx_self_closing_element": NodeKind.UI_ELEMENT,
}


class SourceParseError(ValueError):
    """Raised when source text cannot be parsed without syntax errors.

    Attributes:
        label: Name of the parsed source, usually its relative path.
        line: 1-based line of the first error, or None if unknown.
    """

    def __init__(self, label: str, line: Optional[int] = None) -> None:
        self.label = label
        self.line = line
        where = f"{label}:{line}" if line else label
        super().__init__(f"Syntax error in {where}")


@dataclass
class ParsedSource:
    """A parsed syntax tree together with the bytes it was built from."""

    root: tree_sitter.Node
    source_bytes: bytes
    grammar: Grammar

    def text(self, node: tree_sitter.Node) -> str:
        """Return the source text covered by a node."""
        return self.source_bytes[node.start_byte : node.end_byte].decode(
            "utf-8", errors="replace"
        )


def grammar_for(path: str) -> Grammar:
    """Pick the grammar for a script path.

    Args:
        path: File path; only the extension is inspected.

    Returns:
        TSX for ``.tsx``, TYPESCRIPT for ``.ts``, JAVASCRIPT otherwise.
        The JavaScript grammar accepts JSX as well.
    """
    if is_tsx(path):
        return Grammar.TSX
    if is_typescript(path):
        return Grammar.TYPESCRIPT
    return Grammar.JAVASCRIPT


def parse_source(source: str, grammar: Grammar, label: str = "<string>") -> ParsedSource:
    """Parse source text into a syntax tree.

    A new ``tree_sitter.Parser`` is created per call so that parses
    running in worker threads never share parser state.

    Args:
        source: The source text.
        grammar: Grammar to parse with.
        label: Name used in error messages.

    Returns:
        The parsed source.

    Raises:
        SourceParseError: If the tree contains error or missing nodes.
    """
    parser = tree_sitter.Parser(_LANGUAGES[grammar])
    source_bytes = source.encode("utf-8")
    tree = parser.parse(source_bytes)
    root = tree.root_node
    if root.has_error:
        raise SourceParseError(label, _first_error_line(root))
    return ParsedSource(root=root, source_bytes=source_bytes, grammar=grammar)


def _first_error_line(root: tree_sitter.Node) -> Optional[int]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point.row + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def node_kind(node: tree_sitter.Node) -> Optional[NodeKind]:
    """Map a tree-sitter node to its NodeKind, or None if irrelevant."""
    return _KIND_BY_TYPE.get(node.type)


def walk(root: tree_sitter.Node) -> Iterator[tuple[NodeKind, tree_sitter.Node]]:
    """Traverse a tree in preorder, yielding only relevant nodes.

    Args:
        root: Node to start from (included in the traversal).

    Yields:
        ``(kind, node)`` pairs in source order.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        kind = _KIND_BY_TYPE.get(node.type)
        if kind is not None:
            yield kind, node
        stack.extend(reversed(node.children))


def iter_descendants(root: tree_sitter.Node, node_type: str) -> Iterator[tree_sitter.Node]:
    """Yield every descendant of ``root`` with the given type, in preorder."""
    stack = list(reversed(root.children))
    while stack:
        node = stack.pop()
        if node.type == node_type:
            yield node
        stack.extend(reversed(node.children))
