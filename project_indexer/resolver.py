"""
Path Resolver - Resolves import specifiers to absolute file paths.

This module provides functionality to:
1. Load tsconfig.json `compilerOptions.paths` and package.json `imports`
2. Resolve relative, absolute, `#alias` and path-mapped specifiers
3. Pick a file extension heuristically (no filesystem access)
"""

import json
import logging
import os
import re
from typing import Optional

logger = logging.getLogger(__name__)

# How far above the project root config files are searched (monorepos)
MAX_PARENT_LEVELS = 2

# Build output directories rewritten to their source directory for `#` imports
BUILD_OUTPUT_REWRITES = {"./dist/": "./src/", "dist/": "src/"}

_KNOWN_EXTENSION_RE = re.compile(r"\.(js|ts|jsx|tsx|json)$")
# Other extensions kept as-is instead of getting ".ts"/".js" appended
_PRESERVED_EXTENSION_RE = re.compile(
    r"\.(mjs|cjs|mts|cts|vue|svelte|css|scss|sass|less|html|svg|png|jpe?g|gif|webp|wasm|node|md)$"
)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_BLOCK_COMMENT_RE = re.compile(r"(?<!@)/\*.*?\*/", re.DOTALL)


def load_jsonc(content: str):
    """
    Parse JSON that may contain // and /* */ comments and trailing commas.

    tsconfig.json is routinely written this way.
    """
    cleaned_lines = []
    for line in content.split("\n"):
        comment_pos = line.find("//")
        while comment_pos >= 0:
            before_comment = line[:comment_pos]
            # Skip "//" inside strings such as "https://..."
            if before_comment.count('"') % 2 == 0:
                line = before_comment
                break
            comment_pos = line.find("//", comment_pos + 2)
        cleaned_lines.append(line)
    content = "\n".join(cleaned_lines)

    if "/*" in content and "*/" in content:
        content = _BLOCK_COMMENT_RE.sub("", content)

    content = _TRAILING_COMMA_RE.sub(r"\1", content)
    return json.loads(content)


def matches_pattern(specifier: str, pattern: str) -> bool:
    """
    Check if a specifier matches an alias pattern like "#root/*" or "@app/*".

    Patterns without a wildcard must match exactly; `*` matches any
    substring. The match is anchored on both ends.
    """
    if "*" not in pattern:
        return specifier == pattern

    regex = re.escape(pattern).replace(r"\*", ".*")
    return re.fullmatch(regex, specifier) is not None


def replace_pattern(specifier: str, pattern: str, target: str) -> str:
    """
    Substitute the wildcard capture of `pattern` into `target`.

    Example:
        replace_pattern("#lib/utils", "#lib/*", "./src/lib/*") -> "./src/lib/utils"
    """
    if "*" not in pattern or "*" not in target:
        return target

    prefix, _, suffix = pattern.partition("*")
    if not specifier.startswith(prefix):
        return target

    wildcard = specifier[len(prefix):]
    if suffix and wildcard.endswith(suffix):
        wildcard = wildcard[:-len(suffix)]

    return target.replace("*", wildcard, 1)


class PathResolver:
    """
    Resolve import specifiers to absolute file paths.

    Example:
        resolver = PathResolver("/home/user/app")
        resolver.initialize()
        resolver.resolve_import_path("./utils", "/home/user/app/src/index.ts")
        # → /home/user/app/src/utils.ts

    The returned path is a best guess: extension probing never touches the
    filesystem, so callers must tolerate paths that do not exist.
    """

    def __init__(self, project_root: str):
        self.project_root = os.path.abspath(project_root)
        self.ts_config: Optional[dict] = None
        self.package_json: Optional[dict] = None
        self.path_mappings: dict[str, str] = {}
        self.compiler_paths: dict[str, list[str]] = {}

    def initialize(self):
        """Load tsconfig.json and package.json (both optional)."""
        self.ts_config = self._find_config_in_parent_dirs("tsconfig.json", jsonc=True)
        self.package_json = self._find_config_in_parent_dirs("package.json")
        self.compiler_paths = self._compiler_paths()
        self._build_path_mappings()
        logger.debug(
            "PathResolver initialized for %s (tsconfig=%s, package.json=%s)",
            self.project_root, self.ts_config is not None, self.package_json is not None,
        )

    def resolve_import_path(self, specifier: str, from_file: str) -> Optional[str]:
        """
        Resolve an import specifier to an absolute path.

        Args:
            specifier: Raw module specifier (e.g., "./config", "#lib/db", "@app/models")
            from_file: Absolute path of the importing file

        Returns:
            Absolute path, or None for external (package) imports
        """
        from_dir = os.path.dirname(from_file)

        if specifier.startswith("#"):
            return self._resolve_package_import(specifier)
        if specifier.startswith("./") or specifier.startswith("../"):
            return self._resolve_to_file(os.path.normpath(os.path.join(from_dir, specifier)))
        if specifier.startswith("/"):
            return self._resolve_to_file(os.path.normpath(specifier))
        if self.compiler_paths:
            return self._resolve_path_mapping(specifier)

        # node_modules or other external package
        return None

    def normalize_file_path(self, file_path: str) -> str:
        """Project-relative, forward-slash form of a path."""
        relative = os.path.relpath(os.path.abspath(file_path), self.project_root)
        return relative.replace("\\", "/")

    def get_debug_info(self) -> dict:
        return {
            "projectRoot": self.project_root,
            "tsConfig": self.ts_config,
            "packageJson": self.package_json,
            "pathMappings": list(self.path_mappings.items()),
        }

    def _compiler_options(self) -> dict:
        options = (self.ts_config or {}).get("compilerOptions")
        return options if isinstance(options, dict) else {}

    def _compiler_paths(self) -> dict:
        """compilerOptions.paths, keeping only pattern -> list of string targets"""
        paths = self._compiler_options().get("paths")
        if not isinstance(paths, dict):
            return {}

        valid = {}
        for pattern, targets in paths.items():
            if not isinstance(targets, list):
                logger.warning("Ignoring tsconfig paths entry %r: targets must be a list", pattern)
                continue
            targets = [t for t in targets if isinstance(t, str)]
            if targets:
                valid[pattern] = targets
        return valid

    def _package_imports(self) -> dict:
        imports = (self.package_json or {}).get("imports")
        return imports if isinstance(imports, dict) else {}

    def _resolve_package_import(self, specifier: str) -> Optional[str]:
        """Resolve package.json subpath imports like #root/*"""
        for pattern, target in self._package_imports().items():
            if not isinstance(target, str):
                # Conditional targets ({"node": ..., "default": ...}) are not supported
                continue
            if not matches_pattern(specifier, pattern):
                continue

            resolved = replace_pattern(specifier, pattern, target)

            # Point at sources, not build artifacts
            for build_prefix, source_prefix in BUILD_OUTPUT_REWRITES.items():
                if resolved.startswith(build_prefix):
                    resolved = source_prefix + resolved[len(build_prefix):]
                    break

            full_path = os.path.normpath(os.path.join(self.project_root, resolved))
            return self._resolve_to_file(full_path)
        return None

    def _resolve_path_mapping(self, specifier: str) -> Optional[str]:
        """Resolve tsconfig compilerOptions.paths mappings against baseUrl"""
        base_url = self._compiler_options().get("baseUrl")
        if not isinstance(base_url, str) or not base_url:
            base_url = "."
        base_dir = os.path.normpath(os.path.join(self.project_root, base_url))

        for pattern, targets in self.compiler_paths.items():
            if not matches_pattern(specifier, pattern):
                continue
            for target in targets:
                resolved = replace_pattern(specifier, pattern, target)
                if resolved.startswith("./"):
                    resolved = resolved[2:]

                full_path = os.path.normpath(os.path.join(base_dir, resolved))
                existing = self._resolve_to_file(full_path)
                if existing:
                    return existing
        return None

    def _resolve_to_file(self, base_path: str) -> Optional[str]:
        """
        Choose the file extension for a candidate path.

        - "x.js"  → "x.ts" (compiled-ESM style imports point at TS sources)
        - "x"     → "x.ts" under a src/ directory, "x.js" elsewhere
        - "x.tsx" / "x.json" / "x.mjs" / ... → unchanged
        """
        without_ext = _KNOWN_EXTENSION_RE.sub("", base_path)

        if base_path.endswith(".js"):
            return without_ext + ".ts"

        if _PRESERVED_EXTENSION_RE.search(base_path):
            return base_path

        if not _KNOWN_EXTENSION_RE.search(base_path):
            relative = os.path.relpath(base_path, self.project_root).replace("\\", "/")
            if "/src/" in base_path.replace("\\", "/") or relative.startswith("src/"):
                return without_ext + ".ts"
            return without_ext + ".js"

        return base_path

    def _find_config_in_parent_dirs(self, filename: str, jsonc: bool = False) -> Optional[dict]:
        """
        Look for `filename` in the project root, then up to MAX_PARENT_LEVELS
        parent directories. First parsable match wins.
        """
        current_dir = self.project_root
        for _level in range(MAX_PARENT_LEVELS + 1):
            config = self._read_config(os.path.join(current_dir, filename), jsonc)
            if config is not None:
                return config

            parent_dir = os.path.dirname(current_dir)
            if parent_dir == current_dir:
                # Reached filesystem root
                break
            current_dir = parent_dir
        return None

    def _read_config(self, file_path: str, jsonc: bool) -> Optional[dict]:
        if not os.path.isfile(file_path):
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = f.read()
            data = load_jsonc(content) if jsonc else json.loads(content)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Failed to load %s: %s", file_path, e)
            return None
        return data if isinstance(data, dict) else None

    def _build_path_mappings(self):
        """Flatten both alias sources into one lookup table (debug output only)"""
        self.path_mappings.clear()

        for pattern, targets in self.compiler_paths.items():
            self.path_mappings[pattern] = targets[0]

        for pattern, target in self._package_imports().items():
            self.path_mappings[pattern] = target
