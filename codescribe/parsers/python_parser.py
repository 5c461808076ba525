"""Python fact extractor using the ast module.

Extracts imports, exports, top-level functions, classes with methods,
route decorators (Flask / FastAPI style) and raw query calls from
Python source files into a FileRecord.
"""

import ast
import logging
import re
from typing import Optional

from codescribe.parsers.js_parser import HTTP_VERBS, QUERY_VERBS
from codescribe.parsers.structure import (
    ClassFact,
    FileRecord,
    FunctionFact,
    QueryFact,
    RouteFact,
)

logger = logging.getLogger(__name__)

_ROUTE_PARAM_RE = re.compile(r"<(?:\w+:)?(\w+)>|\{(\w+)\}")
_FunctionNode = (ast.FunctionDef, ast.AsyncFunctionDef)


class PythonParser:
    """Parses Python source into FileRecord facts.

    Only module-level functions and classes are recorded; nested
    definitions are not. Calls anywhere in the module are inspected for
    query patterns.
    """

    def parse_source(self, source: str, record: FileRecord) -> FileRecord:
        """Parse Python source code and populate the record's facts.

        Args:
            source: Python source code as a string.
            record: The record to populate.

        Returns:
            The same record, populated.

        Raises:
            SyntaxError: If the source contains invalid Python syntax.
        """
        tree = ast.parse(source, filename=record.relative_path)

        exports = self._exports(tree)
        for name in exports:
            record.add_export(name)

        for node in ast.iter_child_nodes(tree):
            if isinstance(node, _FunctionNode):
                record.functions.append(
                    self._extract_function(node, is_exported=node.name in exports)
                )
                record.routes.extend(self._extract_routes(node))
            elif isinstance(node, ast.ClassDef):
                record.classes.append(self._extract_class(node, node.name in exports))

        imports = [n for n in ast.walk(tree) if isinstance(n, (ast.Import, ast.ImportFrom))]
        for node in sorted(imports, key=lambda n: (n.lineno, n.col_offset)):
            if isinstance(node, ast.Import):
                record.dependencies.extend(alias.name for alias in node.names)
            elif isinstance(node, ast.ImportFrom):
                record.dependencies.append("." * node.level + (node.module or ""))

        record.queries.extend(self._extract_queries(tree, record.relative_path))

        logger.debug(
            "Parsed %s: %d functions, %d classes, %d routes",
            record.relative_path,
            len(record.functions),
            len(record.classes),
            len(record.routes),
        )
        return record

    def _exports(self, tree: ast.Module) -> list[str]:
        """Collect exported names.

        Uses ``__all__`` when it is a literal list or tuple of strings,
        otherwise every public top-level function and class.
        """
        for node in tree.body:
            if not isinstance(node, ast.Assign):
                continue
            targets = [t.id for t in node.targets if isinstance(t, ast.Name)]
            if "__all__" in targets and isinstance(node.value, (ast.List, ast.Tuple)):
                return [
                    elt.value
                    for elt in node.value.elts
                    if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
                ]
        return [
            node.name
            for node in tree.body
            if isinstance(node, (*_FunctionNode, ast.ClassDef))
            and not node.name.startswith("_")
        ]

    def _extract_function(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        is_exported: bool,
        is_method: bool = False,
    ) -> FunctionFact:
        args = node.args
        params = [a.arg for a in (*args.posonlyargs, *args.args)]
        if args.vararg:
            params.append(args.vararg.arg)
        params.extend(a.arg for a in args.kwonlyargs)
        if args.kwarg:
            params.append(args.kwarg.arg)
        if is_method and params and params[0] in ("self", "cls"):
            params = params[1:]

        return FunctionFact(
            name=node.name,
            params=params,
            is_async=isinstance(node, ast.AsyncFunctionDef),
            is_exported=is_exported,
            start_line=node.lineno,
            end_line=node.end_lineno or node.lineno,
        )

    def _extract_class(self, node: ast.ClassDef, is_exported: bool) -> ClassFact:
        methods = [
            self._extract_function(item, is_exported=False, is_method=True)
            for item in node.body
            if isinstance(item, _FunctionNode)
        ]
        superclass = None
        if node.bases:
            base = node.bases[0]
            if isinstance(base, ast.Name):
                superclass = base.id
            elif isinstance(base, ast.Attribute):
                superclass = base.attr

        return ClassFact(
            name=node.name,
            methods=methods,
            superclass=superclass,
            is_exported=is_exported,
        )

    def _extract_routes(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> list[RouteFact]:
        """Turn route decorators of a function into RouteFacts.

        Recognises ``@app.get("/x")`` style verbs and Flask's
        ``@app.route("/x", methods=[...])`` (GET when methods is absent).
        """
        routes = []
        for decorator in node.decorator_list:
            if not isinstance(decorator, ast.Call) or not isinstance(decorator.func, ast.Attribute):
                continue
            path = _first_string_arg(decorator)
            if path is None:
                continue
            verb = decorator.func.attr
            if verb in HTTP_VERBS:
                methods = [verb.upper()]
            elif verb == "route":
                methods = _declared_methods(decorator) or ["GET"]
            else:
                continue
            params = [a or b for a, b in _ROUTE_PARAM_RE.findall(path)]
            routes.extend(
                RouteFact(method=method, path=path, handler=node.name, params=params)
                for method in methods
            )
        return routes

    def _extract_queries(self, tree: ast.Module, relative_path: str) -> list[QueryFact]:
        queries = []
        for node in ast.walk(tree):
            if not isinstance(node, ast.Call):
                continue
            if isinstance(node.func, ast.Name):
                verb = node.func.id
            elif isinstance(node.func, ast.Attribute):
                verb = node.func.attr
            else:
                continue
            query = _first_string_arg(node)
            if verb.lower() in QUERY_VERBS and query is not None:
                queries.append(
                    QueryFact(
                        operation=verb.lower(),
                        query=query,
                        location=f"{relative_path}:{node.lineno}",
                    )
                )
        queries.sort(key=lambda q: int(q.location.rsplit(":", 1)[1]))
        return queries


def _first_string_arg(call: ast.Call) -> Optional[str]:
    if call.args and isinstance(call.args[0], ast.Constant) and isinstance(call.args[0].value, str):
        return call.args[0].value
    return None


def _declared_methods(call: ast.Call) -> list[str]:
    for keyword in call.keywords:
        if keyword.arg == "methods" and isinstance(keyword.value, (ast.List, ast.Tuple)):
            return [
                elt.value.upper()
                for elt in keyword.value.elts
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
            ]
    return []
