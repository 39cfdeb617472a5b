"""
Core data models for Project Indexer.

Every per-file mapping in the index is keyed by the absolute file path:
    /home/user/app/src/api/users.ts -> [Symbol(getUser), Symbol(UserService), ...]
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
import json


def _compact(data: dict) -> dict:
    """Drop unset fields, like JSON.stringify does with undefined."""
    return {k: v for k, v in data.items() if v is not None}


class SymbolType(str, Enum):
    """Symbol kind"""
    FUNCTION = "function"
    METHOD = "method"           # Declared inside a class body
    CLASS = "class"
    INTERFACE = "interface"
    TYPE = "type"               # TypeScript type alias
    ENUM = "enum"
    VARIABLE = "variable"       # Part of the shape, never emitted by the scanner


class DependencyType(str, Enum):
    """Dependency kind (the scanner only emits IMPORT)"""
    IMPORT = "import"
    CALL = "call"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    USES = "uses"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass
class FileInfo:
    """
    File metadata recorded for every discovered file.

    Replaced wholesale on every reindex.
    """
    path: str              # Absolute path
    name: str
    extension: str
    size: int
    last_modified: datetime
    relative_path: str     # Relative to the project root
    is_directory: bool = False

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "extension": self.extension,
            "size": self.size,
            "lastModified": self.last_modified.isoformat(),
            "isDirectory": self.is_directory,
            "relativePath": self.relative_path,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileInfo":
        return cls(
            path=data["path"],
            name=data["name"],
            extension=data.get("extension", ""),
            size=data.get("size", 0),
            last_modified=datetime.fromisoformat(data["lastModified"]),
            relative_path=data.get("relativePath", ""),
            is_directory=data.get("isDirectory", False),
        )


@dataclass
class Parameter:
    name: str
    type: Optional[str] = None
    optional: bool = False
    default_value: Optional[str] = None

    def to_dict(self) -> dict:
        return _compact({
            "name": self.name,
            "type": self.type,
            "optional": self.optional,
            "defaultValue": self.default_value,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "Parameter":
        return cls(
            name=data["name"],
            type=data.get("type"),
            optional=data.get("optional", False),
            default_value=data.get("defaultValue"),
        )


@dataclass
class Symbol:
    """
    A named declaration found in a source file.

    Identity is positional (file + line + name). Duplicates are allowed,
    e.g. overload signatures each produce their own record.
    """
    name: str
    kind: SymbolType
    file: str              # Absolute path of the owning file
    line: int              # 1-based
    column: int            # 1-based
    signature: str = ""    # Raw (trimmed) declaration line

    parameters: Optional[list[Parameter]] = None
    return_type: Optional[str] = None
    visibility: Optional[str] = None     # public / private / protected
    is_static: Optional[bool] = None
    is_async: Optional[bool] = None

    def to_dict(self) -> dict:
        return _compact({
            "name": self.name,
            "type": self.kind.value,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "parameters": (
                [p.to_dict() for p in self.parameters]
                if self.parameters is not None else None
            ),
            "returnType": self.return_type,
            "visibility": self.visibility,
            "isStatic": self.is_static,
            "isAsync": self.is_async,
            "signature": self.signature,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "Symbol":
        params = data.get("parameters")
        return cls(
            name=data["name"],
            kind=SymbolType(data["type"]),
            file=data["file"],
            line=data.get("line", 0),
            column=data.get("column", 0),
            signature=data.get("signature", ""),
            parameters=[Parameter.from_dict(p) for p in params] if params is not None else None,
            return_type=data.get("returnType"),
            visibility=data.get("visibility"),
            is_static=data.get("isStatic"),
            is_async=data.get("isAsync"),
        )


@dataclass
class Route:
    """HTTP route declaration (e.g. router.get('/users/:id', ...))"""
    path: str
    method: HttpMethod
    file: str
    line: int
    handler: Optional[str] = None
    middleware: Optional[list[str]] = None

    def to_dict(self) -> dict:
        return _compact({
            "path": self.path,
            "method": self.method.value,
            "file": self.file,
            "line": self.line,
            "handler": self.handler,
            "middleware": self.middleware,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "Route":
        return cls(
            path=data["path"],
            method=HttpMethod(data["method"]),
            file=data["file"],
            line=data.get("line", 0),
            handler=data.get("handler"),
            middleware=data.get("middleware"),
        )


@dataclass
class Dependency:
    """
    Edge of the dependency graph.

    from_file -> to (raw import specifier). resolved_to is the absolute path
    the specifier is believed to point at; it is never checked against the
    filesystem and may dangle.
    """
    from_file: str
    to: str
    kind: DependencyType
    file: str
    line: int
    resolved_to: Optional[str] = None

    def to_dict(self) -> dict:
        return _compact({
            "from": self.from_file,
            "to": self.to,
            "resolvedTo": self.resolved_to,
            "type": self.kind.value,
            "file": self.file,
            "line": self.line,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "Dependency":
        return cls(
            from_file=data["from"],
            to=data["to"],
            kind=DependencyType(data.get("type", "import")),
            file=data.get("file", data["from"]),
            line=data.get("line", 0),
            resolved_to=data.get("resolvedTo"),
        )


@dataclass
class IndexSnapshot:
    """
    Complete result of one analysis run; the unit of caching.

    Persisted as parallel lists of [key, value] pairs, one per mapping.
    """
    files: dict[str, FileInfo] = field(default_factory=dict)
    methods: dict[str, list[Symbol]] = field(default_factory=dict)
    paths: dict[str, list[Route]] = field(default_factory=dict)
    dependencies: dict[str, list[Dependency]] = field(default_factory=dict)
    last_indexed: datetime = field(default_factory=lambda: datetime.fromtimestamp(0))

    def clear(self):
        self.files.clear()
        self.methods.clear()
        self.paths.clear()
        self.dependencies.clear()

    def to_dict(self) -> dict:
        return {
            "files": [[k, v.to_dict()] for k, v in self.files.items()],
            "methods": [[k, [s.to_dict() for s in v]] for k, v in self.methods.items()],
            "paths": [[k, [r.to_dict() for r in v]] for k, v in self.paths.items()],
            "dependencies": [[k, [d.to_dict() for d in v]] for k, v in self.dependencies.items()],
            "lastIndexed": self.last_indexed.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IndexSnapshot":
        return cls(
            files={k: FileInfo.from_dict(v) for k, v in data.get("files", [])},
            methods={k: [Symbol.from_dict(s) for s in v] for k, v in data.get("methods", [])},
            paths={k: [Route.from_dict(r) for r in v] for k, v in data.get("paths", [])},
            dependencies={
                k: [Dependency.from_dict(d) for d in v]
                for k, v in data.get("dependencies", [])
            },
            last_indexed=datetime.fromisoformat(data["lastIndexed"]),
        )


@dataclass
class CacheEntry:
    """Cached payload with an optional time-to-live in milliseconds"""
    data: Any
    timestamp: datetime = field(default_factory=datetime.now)
    ttl: Optional[int] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if not self.ttl:
            return False
        now = now or datetime.now()
        age_ms = (now - self.timestamp).total_seconds() * 1000
        return age_ms > self.ttl

    def to_dict(self) -> dict:
        return {
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(
            data=data["data"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            ttl=data.get("ttl"),
        )


@dataclass
class AnalysisOptions:
    project_path: str
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    force_reindex: bool = False

    def to_dict(self) -> dict:
        return {
            "projectPath": self.project_path,
            "includePatterns": self.include_patterns,
            "excludePatterns": self.exclude_patterns,
            "forceReindex": self.force_reindex,
        }

    def cache_key(self, resolved_root: str) -> str:
        """
        Cache key derived from the absolute root and the full options object.

        force_reindex is part of the options, so forced and regular runs
        are cached under different keys.
        """
        return f"project-{resolved_root}-{json.dumps(self.to_dict(), separators=(',', ':'))}"
