"""
Read-only resources over the current index.

URIs:
    project://files          - every discovered file
    project://methods        - symbols grouped by kind
    project://relationships  - raw dependency records
    project://paths          - HTTP routes grouped by method
"""

import json

from .engine import ProjectIndexer

RESOURCE_URIS = [
    "project://files",
    "project://methods",
    "project://relationships",
    "project://paths",
]


def list_resources() -> list:
    return [
        {"uri": "project://files", "name": "Project files", "mimeType": "application/json",
         "description": "All files discovered by the last analysis"},
        {"uri": "project://methods", "name": "Project methods", "mimeType": "application/json",
         "description": "Functions, classes, methods, interfaces and types grouped by kind"},
        {"uri": "project://relationships", "name": "Project relationships", "mimeType": "application/json",
         "description": "Import dependencies between files"},
        {"uri": "project://paths", "name": "API paths", "mimeType": "application/json",
         "description": "HTTP routes grouped by method"},
    ]


def _group(items: list, key) -> dict:
    grouped: dict[str, list] = {}
    for item in items:
        grouped.setdefault(key(item), []).append(item.to_dict())
    return grouped


def _files(indexer: ProjectIndexer) -> dict:
    files = indexer.get_all_files()
    return {
        "summary": {
            "totalFiles": len(files),
            "lastIndexed": indexer.get_project_stats()["lastIndexed"],
        },
        "files": [
            {
                "path": f.path,
                "relativePath": f.relative_path,
                "name": f.name,
                "extension": f.extension,
                "size": f.size,
                "lastModified": f.last_modified.isoformat(),
            }
            for f in files
        ],
    }


def _methods(indexer: ProjectIndexer) -> dict:
    methods = indexer.get_all_methods()
    by_type = _group(methods, lambda s: s.kind.value)
    return {
        "summary": {
            "totalMethods": len(methods),
            "methodsByType": {kind: len(items) for kind, items in by_type.items()},
            "lastIndexed": indexer.get_project_stats()["lastIndexed"],
        },
        "methodsByType": by_type,
        "allMethods": [s.to_dict() for s in methods],
    }


def _relationships(indexer: ProjectIndexer) -> dict:
    dependencies = indexer.get_all_dependencies()
    return {
        "summary": {
            "totalDependencies": len(dependencies),
            "lastIndexed": indexer.get_project_stats()["lastIndexed"],
        },
        "dependencies": [d.to_dict() for d in dependencies],
    }


def _paths(indexer: ProjectIndexer) -> dict:
    routes = indexer.get_all_paths()
    by_method = _group(routes, lambda r: r.method.value)
    return {
        "summary": {
            "totalPaths": len(routes),
            "pathsByMethod": {method: len(items) for method, items in by_method.items()},
            "lastIndexed": indexer.get_project_stats()["lastIndexed"],
        },
        "pathsByMethod": by_method,
        "allPaths": [r.to_dict() for r in routes],
    }


def read_resource(indexer: ProjectIndexer, uri: str) -> dict:
    """Read a resource by URI. Unknown URIs return {"error": ...}."""
    if uri == "project://files":
        data = _files(indexer)
    elif uri == "project://methods":
        data = _methods(indexer)
    elif uri == "project://relationships":
        data = _relationships(indexer)
    elif uri == "project://paths":
        data = _paths(indexer)
    else:
        return {"error": f"Unknown resource URI: {uri}"}

    return {
        "contents": [{
            "uri": uri,
            "mimeType": "application/json",
            "text": json.dumps(data, ensure_ascii=False, indent=2),
        }]
    }
