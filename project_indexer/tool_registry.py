"""
Tool Registry - tool names, schemas and dispatch for the indexer operations.

Every handler takes the long-lived ProjectIndexer explicitly and returns a
plain dict:

    {"success": True, "result": {...}, "message": "..."}
    {"success": False, "error": "...", "message": "..."}

Invalid input never raises; the transport layer serializes whatever comes back.
"""

import os
import time
from typing import Any, Dict, Optional, Set

from . import config
from .engine import ProjectIndexer
from .models import AnalysisOptions

TOOL_NAMES: Set[str] = {
    "analyze_project",
    "search_methods",
    "find_usages",
    "find_dependencies",
    "debug_dependencies",
}

SYMBOL_KINDS = ["method", "function", "class", "interface", "type", "all"]


def _failure(error: str, message: str = "Missing required parameter") -> dict:
    return {"success": False, "error": error, "message": message}


def analyze_project(
    indexer: ProjectIndexer,
    project_path: str,
    include_patterns: Optional[list] = None,
    exclude_patterns: Optional[list] = None,
    force_reindex: bool = False,
) -> dict:
    """Index a project (or restore it from cache)."""
    if not project_path or not os.path.isabs(project_path):
        return _failure(
            "Project path must be an absolute path",
            f'Invalid project path: "{project_path}". Please provide an absolute path '
            f'(e.g., "/home/user/project" or "C:\\Users\\user\\project").',
        )

    options = AnalysisOptions(
        project_path=project_path,
        include_patterns=list(include_patterns) if include_patterns is not None else list(config.DEFAULT_INCLUDE_PATTERNS),
        exclude_patterns=list(exclude_patterns) if exclude_patterns is not None else list(config.DEFAULT_EXCLUDE_PATTERNS),
        force_reindex=bool(force_reindex),
    )
    result = indexer.analyze_project(options)

    return {
        "success": True,
        "result": result,
        "message": (
            f"Project analysis complete! Found {result['totalFiles']} files, "
            f"{result['totalMethods']} methods, {result['totalPaths']} paths, and "
            f"{result['totalDependencies']} dependencies in {result['duration_ms']}ms."
        ),
    }


def search_methods(
    indexer: ProjectIndexer,
    query: str = "",
    kind: str = "all",
    include_usages: bool = False,
) -> dict:
    """Search symbols by name; at most MAX_SEARCH_RESULTS items are returned."""
    if not query:
        return _failure("Query parameter is required")
    if kind not in SYMBOL_KINDS:
        return _failure(f"Unknown symbol type: {kind}", f"type must be one of {', '.join(SYMBOL_KINDS)}")

    result = indexer.search_methods(query, kind, include_usages)
    return {
        "success": True,
        "result": {
            "query": result["query"],
            "totalCount": result["totalCount"],
            "searchTime_ms": result["searchTime_ms"],
            "items": result["items"][:config.MAX_SEARCH_RESULTS],
        },
        "message": (
            f"Found {result['totalCount']} matching items for query \"{query}\" "
            f"in {result['searchTime_ms']}ms"
        ),
    }


def find_usages(
    indexer: ProjectIndexer,
    file_path: Optional[str] = None,
    method_name: Optional[str] = None,
    class_name: Optional[str] = None,
    search_type: str = "imports",
) -> dict:
    """Find importers of a file or dependencies mentioning a method/class name."""
    if not file_path and not method_name and not class_name:
        return _failure("Either filePath, methodName, or className is required")
    if search_type not in ("imports", "usages", "both"):
        return _failure(f"Unknown search type: {search_type}", "searchType must be imports, usages or both")

    start = time.monotonic()
    usages = indexer.find_usages(
        file_path=file_path,
        method_name=method_name,
        class_name=class_name,
        search_type=search_type,
    )
    search_time = int((time.monotonic() - start) * 1000)
    query = file_path or method_name or class_name

    return {
        "success": True,
        "result": {
            "searchType": search_type,
            "query": query,
            "totalCount": len(usages),
            "searchTime_ms": search_time,
            "usages": usages[:config.MAX_USAGE_RESULTS],
        },
        "message": f'Found {len(usages)} usages for "{query}" in {search_time}ms',
    }


def find_dependencies(
    indexer: ProjectIndexer,
    entity_name: str = "",
    direction: str = "both",
    depth: int = 2,
) -> dict:
    """Traverse the dependency graph around an entity (depth clamped to 1..10)."""
    if not entity_name:
        return _failure("entityName parameter is required")
    if direction not in ("incoming", "outgoing", "both"):
        return _failure(f"Unknown direction: {direction}", "direction must be incoming, outgoing or both")

    try:
        depth = int(depth)
    except (TypeError, ValueError):
        return _failure(f"Invalid depth: {depth!r}", "depth must be an integer between 1 and 10")
    depth = max(1, min(depth, config.MAX_DEPENDENCY_DEPTH))

    result = indexer.find_dependencies(entity_name, direction, depth)
    incoming = [d.to_dict() for d in result["incoming"]]
    outgoing = [d.to_dict() for d in result["outgoing"]]

    return {
        "success": True,
        "result": {
            "entity": result["entity"],
            "incoming": incoming,
            "outgoing": outgoing,
            "graph": result["graph"],
            "summary": {
                "incomingCount": len(incoming),
                "outgoingCount": len(outgoing),
                "totalNodes": len(result["graph"]),
            },
        },
        "message": (
            f"Found {len(incoming)} incoming and {len(outgoing)} outgoing "
            f'dependencies for "{entity_name}"'
        ),
    }


def debug_dependencies(
    indexer: ProjectIndexer,
    limit: int = 20,
    filter_by: Optional[str] = None,
) -> dict:
    """Dump raw dependency records, optionally filtered by a substring."""
    all_dependencies = indexer.get_all_dependencies()

    filtered = all_dependencies
    if filter_by:
        filtered = [
            d for d in all_dependencies
            if filter_by in d.to
            or filter_by in d.from_file
            or (d.resolved_to and filter_by in d.resolved_to)
        ]

    shown = filtered[:max(0, int(limit))]
    suffix = f' filtered by "{filter_by}"' if filter_by else ""

    return {
        "success": True,
        "result": {
            "totalDependencies": len(all_dependencies),
            "filteredCount": len(filtered),
            "showing": len(shown),
            "dependencies": [d.to_dict() for d in shown],
        },
        "message": f"Showing {len(shown)} dependencies{suffix}",
    }


def get_tool_schemas() -> list:
    """Tool definitions (JSON schema) for the transport layer's tool listing."""
    return [
        {
            "name": "analyze_project",
            "description": (
                "Analyze a TypeScript/JavaScript project: discover files, extract functions, classes, "
                "methods, routes and imports. Must be called before any other tool. "
                "Results are cached; pass forceReindex to rebuild."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "projectPath": {"type": "string", "description": "Absolute path of the project root"},
                    "includePatterns": {"type": "array", "items": {"type": "string"}, "description": "Glob patterns to include. Default: **/*.ts, **/*.js, **/*.json"},
                    "excludePatterns": {"type": "array", "items": {"type": "string"}, "description": "Glob patterns to exclude. Default: node_modules/**, dist/**, **/*.d.ts"},
                    "forceReindex": {"type": "boolean", "description": "Ignore the cached index. Default: false"},
                },
                "required": ["projectPath"],
            },
        },
        {
            "name": "search_methods",
            "description": "Search indexed symbols by name (case-insensitive). Returns up to 50 items.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Name fragment. Examples: 'config', 'UserService'"},
                    "type": {"type": "string", "enum": SYMBOL_KINDS, "description": "Symbol kind filter. Default: all"},
                    "includeUsages": {"type": "boolean", "description": "Attach file:line usages to each item"},
                },
                "required": ["query"],
            },
        },
        {
            "name": "find_usages",
            "description": "Find the files importing a file, or dependencies mentioning a method/class name. Returns up to 100 usages.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "filePath": {"type": "string", "description": "File whose importers to find. Example: 'src/config.ts'"},
                    "methodName": {"type": "string", "description": "Method name to look for"},
                    "className": {"type": "string", "description": "Class name to look for"},
                    "searchType": {"type": "string", "enum": ["imports", "usages", "both"], "description": "Default: imports"},
                },
                "required": [],
            },
        },
        {
            "name": "find_dependencies",
            "description": "Walk the dependency graph around a file or module name in either direction.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "entityName": {"type": "string", "description": "File path or module specifier fragment"},
                    "direction": {"type": "string", "enum": ["incoming", "outgoing", "both"], "description": "Default: both"},
                    "depth": {"type": "integer", "minimum": 1, "maximum": 10, "description": "Traversal depth. Default: 2"},
                },
                "required": ["entityName"],
            },
        },
        {
            "name": "debug_dependencies",
            "description": "Show raw dependency records (from, to, resolvedTo) to inspect import resolution.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "limit": {"type": "integer", "description": "Max records. Default: 20"},
                    "filterBy": {"type": "string", "description": "Substring to match in from/to/resolvedTo"},
                },
            },
        },
    ]


# =============================================================================
# Unified tool dispatch
# =============================================================================

def execute_tool(indexer: ProjectIndexer, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute a tool by name with camelCase wire arguments.

    Raises KeyError for unknown tool names.
    """
    _DISPATCH = {
        "analyze_project": lambda args: analyze_project(
            indexer,
            project_path=args.get("projectPath", ""),
            include_patterns=args.get("includePatterns"),
            exclude_patterns=args.get("excludePatterns"),
            force_reindex=args.get("forceReindex", False),
        ),
        "search_methods": lambda args: search_methods(
            indexer,
            query=args.get("query", ""),
            kind=args.get("type", "all"),
            include_usages=args.get("includeUsages", False),
        ),
        "find_usages": lambda args: find_usages(
            indexer,
            file_path=args.get("filePath"),
            method_name=args.get("methodName"),
            class_name=args.get("className"),
            search_type=args.get("searchType", "imports"),
        ),
        "find_dependencies": lambda args: find_dependencies(
            indexer,
            entity_name=args.get("entityName", ""),
            direction=args.get("direction", "both"),
            depth=args.get("depth", 2),
        ),
        "debug_dependencies": lambda args: debug_dependencies(
            indexer,
            limit=args.get("limit", 20),
            filter_by=args.get("filterBy"),
        ),
    }

    handler = _DISPATCH.get(name)
    if handler is None:
        raise KeyError(f"Unknown tool: {name}")
    return handler(arguments or {})
