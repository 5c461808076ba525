"""JavaScript and TypeScript fact extractor using tree-sitter.

Extracts imports, exports, functions, classes, React components, HTTP
route registrations and raw database queries from JS/TS/JSX/TSX
sources into a FileRecord, in a single preorder traversal.
"""

import logging
import re
from typing import Callable, Optional

import tree_sitter

from codescribe.parsers.structure import (
    ClassFact,
    ComponentFact,
    FileRecord,
    FunctionFact,
    QueryFact,
    RouteFact,
)
from codescribe.parsers.syntax import (
    NodeKind,
    ParsedSource,
    grammar_for,
    iter_descendants,
    parse_source,
    walk,
)

logger = logging.getLogger(__name__)

HTTP_VERBS = frozenset({"get", "post", "put", "delete", "patch"})
QUERY_VERBS = frozenset({"query", "select", "insert", "update", "delete", "from"})

_FUNCTION_LIKE_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
}
_BOUND_FUNCTION_TYPES = {"arrow_function", "function_expression", "function"}
_PARAM_WRAPPER_TYPES = {"required_parameter", "optional_parameter"}
_HOOK_RE = re.compile(r"^use[A-Z]")
_ROUTE_PARAM_RE = re.compile(r":(\w+)")


class JSParser:
    """Extracts structural facts from JavaScript and TypeScript files.

    The grammar is chosen from the record's path: ``.tsx`` uses the TSX
    grammar, ``.ts`` the TypeScript grammar, everything else the
    JavaScript grammar (which understands JSX).
    """

    def parse_source(self, source: str, record: FileRecord) -> FileRecord:
        """Parse source text and populate the record's fact lists.

        Args:
            source: JavaScript or TypeScript source code.
            record: The record to populate; its ``relative_path`` picks
                the grammar and labels query locations.

        Returns:
            The same record, populated.

        Raises:
            SourceParseError: If the source has syntax errors. The
                record is left untouched in that case.
        """
        parsed = parse_source(source, grammar_for(record.relative_path), record.relative_path)
        _FactVisitor(parsed, record).visit()

        logger.debug(
            "Parsed %s: %d functions, %d classes, %d components, %d routes",
            record.relative_path,
            len(record.functions),
            len(record.classes),
            len(record.components),
            len(record.routes),
        )
        return record


class _FactVisitor:
    """One traversal over a parsed file, dispatching on NodeKind."""

    def __init__(self, parsed: ParsedSource, record: FileRecord) -> None:
        self._parsed = parsed
        self._record = record
        self._handlers: dict[NodeKind, Callable[[tree_sitter.Node], None]] = {
            NodeKind.IMPORT: self._visit_import,
            NodeKind.EXPORT: self._visit_export,
            NodeKind.FUNCTION: self._visit_function,
            NodeKind.CLASS: self._visit_class,
            NodeKind.CALL: self._visit_call,
            NodeKind.UI_ELEMENT: self._visit_ui_element,
        }

    def visit(self) -> None:
        for kind, node in walk(self._parsed.root):
            self._handlers[kind](node)

    def _text(self, node: tree_sitter.Node) -> str:
        return self._parsed.text(node)

    def _string_value(self, node: tree_sitter.Node) -> str:
        return self._text(node)[1:-1]

    # -- declarations -------------------------------------------------

    def _visit_import(self, node: tree_sitter.Node) -> None:
        source_node = node.child_by_field_name("source")
        if source_node is not None:
            self._record.dependencies.append(self._string_value(source_node))

    def _visit_export(self, node: tree_sitter.Node) -> None:
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            for name in self._declared_names(declaration):
                self._record.add_export(name)
            return

        value = node.child_by_field_name("value")
        if value is not None:
            if value.type == "identifier":
                self._record.add_export(self._text(value))
            elif value.type in _BOUND_FUNCTION_TYPES or value.type == "class":
                name_node = value.child_by_field_name("name")
                self._record.add_export(
                    self._text(name_node) if name_node is not None else "default"
                )
            return

        for clause in node.named_children:
            if clause.type != "export_clause":
                continue
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                alias = spec.child_by_field_name("alias")
                name = alias if alias is not None else spec.child_by_field_name("name")
                if name is not None:
                    self._record.add_export(self._text(name))

    def _declared_names(self, declaration: tree_sitter.Node) -> list[str]:
        if declaration.type in ("lexical_declaration", "variable_declaration"):
            names = []
            for decl in declaration.named_children:
                if decl.type != "variable_declarator":
                    continue
                name_node = decl.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    names.append(self._text(name_node))
            return names
        name_node = declaration.child_by_field_name("name")
        if name_node is None:
            return ["anonymous"] if "function" in declaration.type else []
        return [self._text(name_node)]

    def _visit_function(self, node: tree_sitter.Node) -> None:
        self._record.functions.append(
            self._function_fact(node, is_exported=_is_exported(node))
        )

    def _visit_class(self, node: tree_sitter.Node) -> None:
        name_node = node.child_by_field_name("name")
        methods = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                if member.type != "method_definition":
                    continue
                key = member.child_by_field_name("name")
                if key is None or key.type != "property_identifier":
                    continue
                methods.append(self._function_fact(member, is_exported=False))

        self._record.classes.append(
            ClassFact(
                name=self._text(name_node) if name_node is not None else "anonymous",
                methods=methods,
                superclass=self._superclass(node),
                is_exported=_is_exported(node),
            )
        )

    def _superclass(self, node: tree_sitter.Node) -> Optional[str]:
        for child in node.named_children:
            if child.type != "class_heritage":
                continue
            target = None
            for part in child.named_children:
                if part.type == "extends_clause":
                    target = part.child_by_field_name("value")
                    break
                if part.type != "implements_clause" and target is None:
                    target = part
            if target is not None and target.type == "identifier":
                return self._text(target)
        return None

    def _function_fact(self, node: tree_sitter.Node, is_exported: bool) -> FunctionFact:
        name_node = node.child_by_field_name("name")
        return FunctionFact(
            name=self._text(name_node) if name_node is not None else "anonymous",
            params=self._param_names(node),
            is_async=any(child.type == "async" for child in node.children),
            is_exported=is_exported,
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
        )

    def _param_names(self, node: tree_sitter.Node) -> list[str]:
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            # Arrow functions with a single bare parameter
            single = node.child_by_field_name("parameter")
            return [self._text(single)] if single is not None else []

        names = []
        for param in params_node.named_children:
            if param.type == "comment":
                continue
            if param.type in _PARAM_WRAPPER_TYPES:
                param = _field_or_self(param, "pattern")
            names.append(self._text(param) if param.type == "identifier" else "param")
        return names

    # -- UI components ------------------------------------------------

    def _visit_ui_element(self, node: tree_sitter.Node) -> None:
        function = _enclosing_function(node)
        if function is None:
            return
        name, exported = self._component_binding(function)
        if name is None:
            return
        if any(comp.name == name for comp in self._record.components):
            return
        self._record.components.append(
            ComponentFact(
                name=name,
                props=self._props(function),
                hooks=self._hooks(function),
                is_exported=exported,
            )
        )

    def _component_binding(self, function: tree_sitter.Node) -> tuple[Optional[str], bool]:
        if function.type in ("function_declaration", "generator_function_declaration"):
            name_node = function.child_by_field_name("name")
            if name_node is None:
                return None, False
            return self._text(name_node), _is_exported(function)

        if function.type in _BOUND_FUNCTION_TYPES:
            declarator = function.parent
            if declarator is not None and declarator.type == "variable_declarator":
                name_node = declarator.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    declaration = declarator.parent
                    return self._text(name_node), (
                        declaration is not None and _is_exported(declaration)
                    )
        return None, False

    def _props(self, function: tree_sitter.Node) -> list[str]:
        params_node = function.child_by_field_name("parameters")
        if params_node is None:
            single = function.child_by_field_name("parameter")
            return [self._text(single)] if single is not None else []

        first = next(
            (p for p in params_node.named_children if p.type != "comment"), None
        )
        if first is None:
            return []
        if first.type in _PARAM_WRAPPER_TYPES:
            first = _field_or_self(first, "pattern")
        if first.type == "identifier":
            return [self._text(first)]
        if first.type == "assignment_pattern":
            first = _field_or_self(first, "left")
        if first.type != "object_pattern":
            return []

        props = []
        for entry in first.named_children:
            if entry.type == "shorthand_property_identifier_pattern":
                props.append(self._text(entry))
            elif entry.type == "pair_pattern":
                key = entry.child_by_field_name("key")
                if key is not None:
                    props.append(self._text(key))
            elif entry.type == "object_assignment_pattern":
                left = entry.child_by_field_name("left")
                if left is not None:
                    props.append(self._text(left))
            elif entry.type == "rest_pattern":
                props.extend(
                    self._text(child)
                    for child in entry.named_children
                    if child.type == "identifier"
                )
        return props

    def _hooks(self, function: tree_sitter.Node) -> list[str]:
        body = function.child_by_field_name("body")
        if body is None:
            return []
        hooks: list[str] = []
        for call in iter_descendants(body, "call_expression"):
            callee = call.child_by_field_name("function")
            if callee is None:
                continue
            if callee.type == "member_expression":
                callee = callee.child_by_field_name("property")
            if callee is None:
                continue
            name = self._text(callee)
            if _HOOK_RE.match(name) and name not in hooks:
                hooks.append(name)
        return hooks

    # -- calls --------------------------------------------------------

    def _visit_call(self, node: tree_sitter.Node) -> None:
        callee = node.child_by_field_name("function")
        args_node = node.child_by_field_name("arguments")
        if callee is None or args_node is None:
            return
        args = [arg for arg in args_node.named_children if arg.type != "comment"]
        if not args or args[0].type != "string":
            return

        if callee.type == "member_expression":
            prop = callee.child_by_field_name("property")
            verb = self._text(prop) if prop is not None else ""
            if prop is not None and prop.type == "property_identifier" and verb in HTTP_VERBS:
                self._record.routes.append(self._route_fact(verb, args))
        elif callee.type == "identifier":
            verb = self._text(callee)
        else:
            return

        if verb.lower() in QUERY_VERBS:
            self._record.queries.append(
                QueryFact(
                    operation=verb.lower(),
                    query=self._string_value(args[0]),
                    location=f"{self._record.relative_path}:{node.start_point.row + 1}",
                )
            )

    def _route_fact(self, verb: str, args: list[tree_sitter.Node]) -> RouteFact:
        path = self._string_value(args[0])
        handler = "handler"
        middleware: list[str] = []
        if len(args) > 1:
            last = args[-1]
            if last.type in ("identifier", "member_expression"):
                handler = self._text(last)
            middleware = [self._text(arg) for arg in args[1:-1] if arg.type == "identifier"]
        return RouteFact(
            method=verb.upper(),
            path=path,
            handler=handler,
            middleware=middleware,
            params=_ROUTE_PARAM_RE.findall(path),
        )


def _is_exported(node: tree_sitter.Node) -> bool:
    parent = node.parent
    return parent is not None and parent.type == "export_statement"


def _enclosing_function(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    current = node.parent
    while current is not None:
        if current.type in _FUNCTION_LIKE_TYPES:
            return current
        current = current.parent
    return None


def _field_or_self(node: tree_sitter.Node, field_name: str) -> tree_sitter.Node:
    child = node.child_by_field_name(field_name)
    return child if child is not None else node
