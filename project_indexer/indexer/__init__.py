"""Indexer module exports."""

from .discovery import (
    discover_files,
    glob_to_regex,
    matches_pattern,
    should_include,
)

__all__ = [
    "discover_files",
    "glob_to_regex",
    "matches_pattern",
    "should_include",
]
