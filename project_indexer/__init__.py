"""
Project Indexer - symbol, route and import index for TypeScript/JavaScript projects.

Usage:
    from project_indexer import AnalysisOptions, ProjectIndexer

    indexer = ProjectIndexer()
    indexer.initialize()

    # Index a project (restored from cache when possible)
    stats = indexer.analyze_project(AnalysisOptions(project_path="/path/to/project"))

    # Search symbols
    hits = indexer.search_methods("loadConfig")

    # Who imports this file?
    usages = indexer.find_usages(file_path="src/config.ts", search_type="imports")
"""

from .cache import CacheManager
from .engine import ProjectIndexer
from .models import (
    AnalysisOptions, Dependency, DependencyType, FileInfo, IndexSnapshot,
    Route, Symbol, SymbolType,
)
from .resolver import PathResolver

__version__ = "1.0.0"
__all__ = [
    "ProjectIndexer",
    "CacheManager",
    "PathResolver",
    "AnalysisOptions",
    "FileInfo",
    "Symbol",
    "Route",
    "Dependency",
    "IndexSnapshot",
    "SymbolType",
    "DependencyType",
]
