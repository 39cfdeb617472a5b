"""
File discovery - walk a project tree with include/exclude glob filters.

Glob subset:
    **   any characters, across path separators ("**/" also matches nothing)
    *    any characters within one path segment
    ?    exactly one character

Patterns are matched against the forward-slash path relative to the root.
"""

import logging
import os
import re
from functools import lru_cache
logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern:
    """Compile a glob pattern into an anchored regular expression"""
    pattern = pattern.replace("\\", "/")
    parts = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append(".")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(parts) + "$")


def matches_pattern(relative_path: str, pattern: str) -> bool:
    normalized = relative_path.replace("\\", "/")
    return glob_to_regex(pattern).match(normalized) is not None


def should_include(relative_path: str, include_patterns: list[str], exclude_patterns: list[str]) -> bool:
    """Excludes win; an empty include list includes everything"""
    for pattern in exclude_patterns:
        if matches_pattern(relative_path, pattern):
            return False

    if not include_patterns:
        return True

    return any(matches_pattern(relative_path, pattern) for pattern in include_patterns)


def _is_inside(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def discover_files(
    root: str,
    include_patterns: list[str],
    exclude_patterns: list[str],
) -> list[str]:
    """
    Walk a project directory and collect matching files.

    Args:
        root: Project root directory
        include_patterns: Glob patterns a file must match (any); empty = all
        exclude_patterns: Glob patterns that reject a file

    Returns:
        Absolute file paths, in walk order (entries sorted by name)
    """
    root = os.path.abspath(root)
    real_root = os.path.realpath(root)
    found: list[str] = []

    def walk(dir_path: str):
        # Never leave the project root
        if not _is_inside(os.path.realpath(dir_path), real_root):
            logger.debug("Skipping directory outside project root: %s", dir_path)
            return

        try:
            with os.scandir(dir_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", dir_path, e)
            return

        for entry in entries:
            full_path = os.path.join(dir_path, entry.name)
            if not _is_inside(os.path.realpath(full_path), real_root):
                logger.debug("Skipping path outside project root: %s", full_path)
                continue

            # Symlinks are neither walked nor indexed
            try:
                if entry.is_symlink():
                    logger.debug("Skipping symlink: %s", full_path)
                    continue
                if entry.is_dir(follow_symlinks=False):
                    walk(full_path)
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
            except OSError:
                continue

            relative_path = os.path.relpath(full_path, root)
            if should_include(relative_path, include_patterns, exclude_patterns):
                found.append(full_path)

    walk(root)
    return found
