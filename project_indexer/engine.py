"""
Main indexing engine - orchestrates the entire flow.

Usage:
1. indexer.analyze_project(options) - Discover, scan and cache a project
2. indexer.search_methods(query) - Search symbols by name
3. indexer.find_usages(file_path=...) - Who imports a file / mentions a name
4. indexer.find_dependencies(name) - Walk the dependency graph
"""

import logging
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from tqdm import tqdm

from . import config
from .cache import CacheManager
from .indexer import discover_files
from .models import (
    AnalysisOptions, Dependency, FileInfo, IndexSnapshot, Route, Symbol,
)
from .resolver import PathResolver
from .scanner import ScanResult, TypeScriptScanner

logger = logging.getLogger(__name__)

_EXT_SUFFIX_RE = re.compile(r"\.(ts|js)$")


class ProjectIndexer:
    """
    Indexing engine

    One long-lived instance holds the current IndexSnapshot and serves every
    query against it. A non-cached analyze_project() replaces the snapshot
    in full; there is no incremental merge.
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        batch_size: Optional[int] = None,
    ):
        self.cache = cache or CacheManager()
        self.batch_size = batch_size or config.BATCH_SIZE
        self.scanner = TypeScriptScanner()
        self.resolver: Optional[PathResolver] = None
        self.project_root: Optional[str] = None
        self.index = IndexSnapshot()
        self.last_scan: Optional[ScanResult] = None

    def initialize(self):
        self.cache.init()

    def reset(self):
        """Drop the in-memory index (the persisted cache is left alone)."""
        self.index.clear()
        self.last_scan = None

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze_project(self, options: AnalysisOptions, show_progress: bool = False) -> dict:
        """
        Build the index for a project, or restore it from cache.

        Args:
            options: Project path, include/exclude globs, force_reindex
            show_progress: Show a tqdm progress bar over batches

        Returns:
            {totalFiles, totalMethods, totalPaths, totalDependencies, duration_ms}
        """
        start = time.monotonic()
        project_root = os.path.abspath(options.project_path)
        logger.info("analyze_project started: %s", project_root)
        logger.debug("Analysis options: %s", options.to_dict())

        # Resolver is always rebuilt: on-the-fly resolution in find_usages needs it
        self.project_root = project_root
        self.resolver = PathResolver(project_root)
        self.resolver.initialize()
        self.scanner.set_resolver(self.resolver)

        cache_key = options.cache_key(project_root)
        if not options.force_reindex:
            cached = self.cache.get(cache_key)
            if cached is not None:
                try:
                    self.index = IndexSnapshot.from_dict(cached)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Cached index for %s is unusable, reindexing: %s", project_root, e)
                else:
                    self.last_scan = None
                    stats = self.get_stats(_elapsed_ms(start))
                    logger.info(
                        "analyze_project completed (cached): %sms, %s files, %s methods",
                        stats["duration_ms"], stats["totalFiles"], stats["totalMethods"],
                    )
                    return stats

        files = discover_files(project_root, options.include_patterns, options.exclude_patterns)
        logger.info("Found %d files to analyze", len(files))

        self.index = IndexSnapshot()
        self.last_scan = self._process_files(files, project_root, show_progress)
        summary = self.last_scan.summary()
        logger.info(
            "Scan finished: %d files, %d symbols, %d routes, %d dependencies, %d errors",
            summary["files_scanned"], summary["symbols_found"], summary["routes_found"],
            summary["dependencies_found"], summary["errors"],
        )
        self.index.last_indexed = datetime.now()

        logger.debug("Caching results with key: %s", cache_key)
        self.cache.set(cache_key, self.index.to_dict(), config.CACHE_TTL_MS)

        stats = self.get_stats(_elapsed_ms(start))
        logger.info(
            "analyze_project completed: %sms, %s files, %s methods, %s paths, %s dependencies",
            stats["duration_ms"], stats["totalFiles"], stats["totalMethods"],
            stats["totalPaths"], stats["totalDependencies"],
        )
        return stats

    def _process_files(self, files: list[str], project_root: str, show_progress: bool) -> ScanResult:
        """
        Process files in fixed-size batches.

        Files within a batch are scanned concurrently; the next batch starts
        only after the whole batch finished.
        """
        result = ScanResult()
        batches = [files[i:i + self.batch_size] for i in range(0, len(files), self.batch_size)]
        total_batches = len(batches)

        iterator = tqdm(batches, desc="Indexing", unit="batch", disable=not show_progress)
        processed = 0
        for batch_number, batch in enumerate(iterator, start=1):
            logger.debug("Processing batch %d/%d (%d files)", batch_number, total_batches, len(batch))
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                outcomes = list(executor.map(lambda f: self._process_file(f, project_root), batch))

            for file_path, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    result.add_error(file_path, str(outcome))
                    continue
                self._store_file_result(result, *outcome)

            processed += len(batch)
            if batch_number % config.PROGRESS_LOG_INTERVAL == 0 or batch_number == total_batches:
                logger.info(
                    "Progress: %d/%d files processed (%d%%)",
                    processed, len(files), round(processed / len(files) * 100),
                )

        return result

    def _process_file(self, file_path: str, project_root: str):
        """
        Stat and scan one file.

        Returns (file_info, symbols, routes, dependencies) or the exception
        that made the file unusable; one bad file never aborts the run.
        """
        try:
            file_info = self.scanner.create_file_info(file_path, project_root)
            if not self.scanner.can_scan(file_path):
                logger.debug("Not parsing (unsupported format): %s", file_info.relative_path)
                return file_info, [], [], []

            symbols, routes, dependencies = self.scanner.parse_file(file_path)
            logger.debug(
                "Parsed %s - methods: %d, paths: %d, dependencies: %d",
                file_info.relative_path, len(symbols), len(routes), len(dependencies),
            )
            return file_info, symbols, routes, dependencies
        except Exception as e:
            logger.exception("Error processing file %s: %s", file_path, e)
            return e

    def _store_file_result(
        self,
        result: ScanResult,
        file_info: FileInfo,
        symbols: list[Symbol],
        routes: list[Route],
        dependencies: list[Dependency],
    ):
        result.add_file_result(file_info, symbols, routes, dependencies)
        self.index.files[file_info.path] = file_info
        if symbols:
            self.index.methods[file_info.path] = symbols
        if routes:
            self.index.paths[file_info.path] = routes
        if dependencies:
            self.index.dependencies[file_info.path] = dependencies

    # =========================================================================
    # Queries
    # =========================================================================

    def search_methods(self, query: str, kind: str = "all", include_usages: bool = False) -> dict:
        """
        Search symbols by name (case-insensitive substring).

        Results are ranked: exact name match, then prefix match, then the
        rest, each group in index order.

        Returns:
            {items, totalCount, query, searchTime_ms}
        """
        start = time.monotonic()
        query_lower = query.lower()
        query_regex = re.compile(re.escape(query), re.IGNORECASE)

        matches = []
        for symbol in self.get_all_methods():
            if kind != "all" and symbol.kind.value != kind:
                continue
            if query_lower in symbol.name.lower() or query_regex.search(symbol.name):
                matches.append(symbol)

        matches.sort(key=lambda s: _match_rank(s.name.lower(), query_lower))

        items = []
        for symbol in matches:
            item = symbol.to_dict()
            if include_usages:
                item["usages"] = self._find_method_usages(symbol.name)
            items.append(item)

        return {
            "items": items,
            "totalCount": len(items),
            "query": query,
            "searchTime_ms": _elapsed_ms(start),
        }

    def _find_method_usages(self, name: str) -> list[str]:
        """file:line of every dependency whose text mentions the name (substring)"""
        usages = []
        for file_path, dependencies in self.index.dependencies.items():
            for dep in dependencies:
                if name in dep.to or name in dep.from_file:
                    usages.append(f"{file_path}:{dep.line}")
        return usages

    def find_usages(
        self,
        file_path: Optional[str] = None,
        method_name: Optional[str] = None,
        class_name: Optional[str] = None,
        search_type: str = "both",
    ) -> list[dict]:
        """
        Find imports of a file and/or dependencies mentioning a name.

        File lookups (search_type "imports" or "both") match a dependency by,
        in order: exact resolved path, on-the-fly re-resolution, then
        filename / path-suffix heuristics. Name lookups (search_type
        "usages" or "both") are plain substring checks.

        Returns:
            [{file, line, type, context, from, to, resolvedTo}, ...]
        """
        target_path = self._absolute_query_path(file_path) if file_path else None
        search_term = method_name or class_name
        results = []

        for owner, dependencies in self.index.dependencies.items():
            for dep in dependencies:
                match_type = None

                if file_path and search_type != "usages":
                    if self._imports_file(dep, file_path, target_path):
                        match_type = "import"

                if search_term and search_type != "imports":
                    if search_term in dep.to or search_term in dep.from_file:
                        match_type = "usage"

                if match_type:
                    record = {
                        "file": owner,
                        "line": dep.line,
                        "type": match_type,
                        "context": dep.kind.value,
                        "from": dep.from_file,
                        "to": dep.to,
                    }
                    if dep.resolved_to is not None:
                        record["resolvedTo"] = dep.resolved_to
                    results.append(record)

        return results

    def _absolute_query_path(self, file_path: str) -> str:
        """Relative query paths are taken relative to the analyzed project"""
        if os.path.isabs(file_path):
            return os.path.normpath(file_path)
        base = self.project_root or os.getcwd()
        return os.path.normpath(os.path.join(base, file_path))

    def _imports_file(self, dep: Dependency, file_path: str, target_path: str) -> bool:
        # Primary: exact absolute path
        if dep.resolved_to and os.path.normpath(dep.resolved_to) == target_path:
            return True

        # Secondary: resolve again with the current configuration
        if self.resolver is not None:
            resolved = self.resolver.resolve_import_path(dep.to, dep.from_file)
            if resolved and os.path.normpath(resolved) == target_path:
                return True

        # Fallback: filename and path suffix heuristics
        search_path = _EXT_SUFFIX_RE.sub("", file_path.replace("\\", "/"))
        search_filename = search_path.split("/")[-1]
        dep_path = _EXT_SUFFIX_RE.sub("", dep.to.replace("\\", "/"))
        dep_filename = dep_path.split("/")[-1]

        return bool(
            (search_filename and dep_filename == search_filename)
            or dep_path.endswith(search_path)
            or search_path.endswith(dep_path)
            or file_path in dep.to
            or search_path in dep.to
        )

    def find_dependencies(self, entity_name: str, direction: str = "both", depth: int = 2) -> dict:
        """
        Explore the dependency graph around an entity name.

        Dependencies match by substring: outgoing edges whose `from` contains
        the current name (then continue from `to`), incoming edges whose `to`
        contains it (then continue from `from`). Each name is expanded at
        most once, so import cycles terminate.

        Returns:
            {entity, incoming, outgoing, graph}
        """
        incoming: list[Dependency] = []
        outgoing: list[Dependency] = []
        visited: set[str] = set()
        graph: dict[str, list[str]] = {}

        self._find_dependencies_recursive(
            entity_name, direction, depth, incoming, outgoing, visited, graph, 0,
        )

        return {
            "entity": entity_name,
            "incoming": incoming,
            "outgoing": outgoing,
            "graph": graph,
        }

    def _find_dependencies_recursive(
        self,
        name: str,
        direction: str,
        depth: int,
        incoming: list[Dependency],
        outgoing: list[Dependency],
        visited: set[str],
        graph: dict[str, list[str]],
        current_depth: int,
    ):
        if current_depth >= depth or name in visited:
            return
        visited.add(name)

        for dep in self.get_all_dependencies():
            if direction in ("outgoing", "both") and name in dep.from_file:
                outgoing.append(dep)
                graph.setdefault(dep.from_file, []).append(dep.to)
                self._find_dependencies_recursive(
                    dep.to, direction, depth, incoming, outgoing, visited, graph, current_depth + 1,
                )

            if direction in ("incoming", "both") and name in dep.to:
                incoming.append(dep)
                graph.setdefault(dep.to, []).append(dep.from_file)
                self._find_dependencies_recursive(
                    dep.from_file, direction, depth, incoming, outgoing, visited, graph, current_depth + 1,
                )

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_file_info(self, file_path: str) -> Optional[FileInfo]:
        return self.index.files.get(file_path)

    def get_methods_in_file(self, file_path: str) -> list[Symbol]:
        return self.index.methods.get(file_path, [])

    def get_paths_in_file(self, file_path: str) -> list[Route]:
        return self.index.paths.get(file_path, [])

    def get_all_files(self) -> list[FileInfo]:
        return list(self.index.files.values())

    def get_all_methods(self) -> list[Symbol]:
        return [s for symbols in self.index.methods.values() for s in symbols]

    def get_all_paths(self) -> list[Route]:
        return [r for routes in self.index.paths.values() for r in routes]

    def get_all_dependencies(self) -> list[Dependency]:
        return [d for deps in self.index.dependencies.values() for d in deps]

    def get_project_stats(self) -> dict:
        return {
            "totalFiles": len(self.index.files),
            "totalMethods": len(self.get_all_methods()),
            "totalPaths": len(self.get_all_paths()),
            "totalDependencies": len(self.get_all_dependencies()),
            "lastIndexed": self.index.last_indexed.isoformat(),
        }

    def get_stats(self, duration_ms: int) -> dict:
        return {
            "totalFiles": len(self.index.files),
            "totalMethods": len(self.get_all_methods()),
            "totalPaths": len(self.get_all_paths()),
            "totalDependencies": len(self.get_all_dependencies()),
            "duration_ms": duration_ms,
        }


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _match_rank(name: str, query: str) -> int:
    if name == query:
        return 0
    if name.startswith(query):
        return 1
    return 2
