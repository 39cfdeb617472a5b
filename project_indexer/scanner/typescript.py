"""
TypeScript/JavaScript scanner using line-based regex rules.

Extracts:
- Imports (ES modules and CommonJS require)
- Functions (declarations and arrow functions)
- Classes, interfaces, type aliases, enums
- Class methods
- HTTP routes (router.get('/x'), @get('/x'))

Every line is tested against every rule independently, so one line may
produce several records. Multi-line declarations are not reassembled.
"""

import re
from typing import Optional

from .base import BaseScanner
from .. import config
from ..models import (
    Dependency, DependencyType, HttpMethod, Parameter, Route, Symbol, SymbolType,
)
from ..resolver import PathResolver


# import x from 'y' / import { a } from 'y' / import * as x from 'y' / import 'y'
# also `import type { a }` and `import x, { a }`
IMPORT_RE = re.compile(
    r"""^\s*import\s+(?:type\s+)?"""
    r"""(?:(?:\w+\s*,\s*)?(?:\{[^}]*\}|\*\s+as\s+\w+)\s+from\s+|\w+\s+from\s+)?"""
    r"""['"`]([^'"`]+)['"`]"""
)
REQUIRE_RE = re.compile(r"""require\s*\(['"`]([^'"`]+)['"`]\)""")

FUNCTION_RE = re.compile(r"^(?:export\s+)?(async\s+)?function\s+(\w+)\s*\(([^)]*)\)(?:\s*:\s*([^{]+))?")
ARROW_RE = re.compile(r"(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=\s*(async\s*)?\(([^)]*)\)\s*(?::\s*([^=]+?))?\s*=>")
METHOD_RE = re.compile(
    r"^(?:(private|protected|public)\s+)?(?:(static)\s+)?(?:(async)\s+)?(\w+)\s*\(([^)]*)\)(?:\s*:\s*([^{]+))?"
)

# (kind, pattern, keyword used for the column) - name is always group 1
DECLARATION_RULES = [
    (SymbolType.CLASS,
     re.compile(r"^(?:export\s+)?(?:abstract\s+)?class\s+(\w+)(?:\s+extends\s+(\w+))?(?:\s+implements\s+([^{]+))?"),
     "class"),
    (SymbolType.INTERFACE, re.compile(r"^(?:export\s+)?interface\s+(\w+)(?:\s+extends\s+([^{]+))?"), "interface"),
    (SymbolType.TYPE, re.compile(r"^(?:export\s+)?type\s+(\w+)\s*="), "type"),
    (SymbolType.ENUM, re.compile(r"^(?:export\s+)?enum\s+(\w+)"), "enum"),
]

_VERBS = "get|post|put|delete|patch|head|options"
# Express / Hono / Koa style: app.get('/users', ...), router.post("/login", ...)
ROUTE_CALL_RE = re.compile(r"""\.(""" + _VERBS + r""")\s*\(\s*['"`]([^'"`]+)['"`]""")
# Decorator style: @get('/users')
ROUTE_DECORATOR_RE = re.compile(r"""@(""" + _VERBS + r""")\s*\(\s*['"`]([^'"`]+)['"`]""")

TYPED_PARAM_RE = re.compile(r"(\w+)(\?)?\s*:\s*([^=]+)(?:\s*=\s*(.+))?")
SIMPLE_PARAM_RE = re.compile(r"(\w+)(\?)?(?:\s*=\s*(.+))?")

# Control-flow keywords that look like `name(...)` but are not methods
SKIP_METHOD_NAMES = {
    "if", "for", "while", "switch", "catch", "return", "with",
    "typeof", "await", "yield", "new", "throw", "delete", "void",
}


class TypeScriptScanner(BaseScanner):
    """
    TypeScript/JavaScript scanner

    Extracts:
    - functions / arrow functions
    - classes, interfaces, types, enums
    - methods
    - routes
    - imports (resolved through PathResolver when one is set)
    """

    supported_extensions = list(config.SCANNABLE_EXTENSIONS)

    def __init__(self, resolver: Optional[PathResolver] = None):
        self.resolver = resolver

    def set_resolver(self, resolver: PathResolver):
        self.resolver = resolver

    def scan_file(
        self,
        file_path: str,
        content: str,
    ) -> tuple[list[Symbol], list[Route], list[Dependency]]:
        """Scan a TypeScript/JavaScript file"""
        symbols: list[Symbol] = []
        routes: list[Route] = []
        dependencies: list[Dependency] = []

        for index, line in enumerate(content.split("\n")):
            line_no = index + 1
            self._match_imports(line, line_no, file_path, dependencies)
            self._match_symbols(line, line_no, file_path, symbols)
            self._match_routes(line, line_no, file_path, routes)

        return symbols, routes, dependencies

    def _resolve(self, specifier: str, file_path: str) -> Optional[str]:
        if self.resolver is None:
            return None
        return self.resolver.resolve_import_path(specifier, file_path)

    def _match_imports(self, line: str, line_no: int, file_path: str, dependencies: list[Dependency]):
        """ES module import and CommonJS require on one line"""
        for pattern in (IMPORT_RE, REQUIRE_RE):
            match = pattern.search(line)
            if not match:
                continue
            specifier = match.group(1)
            dependencies.append(Dependency(
                from_file=file_path,
                to=specifier,
                resolved_to=self._resolve(specifier, file_path),
                kind=DependencyType.IMPORT,
                file=file_path,
                line=line_no,
            ))

    def _match_symbols(self, line: str, line_no: int, file_path: str, symbols: list[Symbol]):
        trimmed = line.strip()

        # function name(...)
        match = FUNCTION_RE.match(trimmed)
        if match:
            symbols.append(Symbol(
                name=match.group(2),
                kind=SymbolType.FUNCTION,
                file=file_path,
                line=line_no,
                column=line.find("function") + 1,
                parameters=self.parse_parameters(match.group(3)),
                return_type=_strip_or_none(match.group(4)),
                is_async=bool(match.group(1)),
                signature=trimmed,
            ))

        # const name = (...) =>
        match = ARROW_RE.search(trimmed)
        if match:
            name = match.group(1)
            symbols.append(Symbol(
                name=name,
                kind=SymbolType.FUNCTION,
                file=file_path,
                line=line_no,
                column=line.find(name) + 1,
                parameters=self.parse_parameters(match.group(3)),
                return_type=_strip_or_none(match.group(4)),
                is_async=bool(match.group(2)),
                signature=trimmed,
            ))

        for kind, pattern, keyword in DECLARATION_RULES:
            match = pattern.match(trimmed)
            if match:
                symbols.append(Symbol(
                    name=match.group(1),
                    kind=kind,
                    file=file_path,
                    line=line_no,
                    column=line.find(keyword) + 1,
                    signature=trimmed,
                ))

        # [visibility] [static] [async] name(...) inside a class body
        match = METHOD_RE.match(trimmed)
        if (
            match
            and "function" not in trimmed
            and "=" not in trimmed
            and match.group(4) not in SKIP_METHOD_NAMES
        ):
            name = match.group(4)
            symbols.append(Symbol(
                name=name,
                kind=SymbolType.METHOD,
                file=file_path,
                line=line_no,
                column=line.find(name) + 1,
                parameters=self.parse_parameters(match.group(5)),
                return_type=_strip_or_none(match.group(6)),
                visibility=match.group(1) or "public",
                is_static=bool(match.group(2)),
                is_async=bool(match.group(3)),
                signature=trimmed,
            ))

    def _match_routes(self, line: str, line_no: int, file_path: str, routes: list[Route]):
        for pattern in (ROUTE_CALL_RE, ROUTE_DECORATOR_RE):
            match = pattern.search(line)
            if match:
                routes.append(Route(
                    path=match.group(2),
                    method=HttpMethod(match.group(1).upper()),
                    file=file_path,
                    line=line_no,
                ))

    def parse_parameters(self, param_string: str) -> list[Parameter]:
        """
        Parse a parameter list such as "id: string, opts?: Options = {}".

        Splits on commas without tracking nesting, so generic or object
        types containing commas are split too.
        """
        if not param_string.strip():
            return []

        params = []
        for raw in param_string.split(","):
            trimmed = raw.strip()

            match = TYPED_PARAM_RE.search(trimmed)
            if match:
                params.append(Parameter(
                    name=match.group(1),
                    optional=bool(match.group(2)),
                    type=match.group(3).strip(),
                    default_value=_strip_or_none(match.group(4)),
                ))
                continue

            # Parameter without a type annotation
            match = SIMPLE_PARAM_RE.search(trimmed)
            if match:
                params.append(Parameter(
                    name=match.group(1),
                    optional=bool(match.group(2)),
                    default_value=_strip_or_none(match.group(3)),
                ))
                continue

            params.append(Parameter(name=trimmed))

        return params


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()
