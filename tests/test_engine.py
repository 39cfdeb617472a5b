"""Tests for ProjectIndexer (analysis pipeline and queries)."""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from project_indexer.cache import CacheManager
from project_indexer.engine import ProjectIndexer
from project_indexer.models import AnalysisOptions, SymbolType
from project_indexer import config


# ---------------------------------------------------------------------------
# Sample sources
# ---------------------------------------------------------------------------

CONFIG_TS = """\
import { readFile } from 'node:fs/promises'

export class Config {
  private values: Record<string, string> = {}
}

export const CONFIG_INIT = () => new Config()

export async function loadConfig(path: string): Promise<Config> {
  return CONFIG_INIT()
}
"""

ROUTES_TS = """\
import { loadConfig } from './config'
import { Router } from 'express'

const router = Router()
router.get('/health', health)
router.post('/reload', reload)
"""


def _create_project(tmp_path, files):
    for rel_path, content in files.items():
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return tmp_path


def _options(root, **kwargs):
    return AnalysisOptions(
        project_path=str(root),
        include_patterns=kwargs.pop("include_patterns", list(config.DEFAULT_INCLUDE_PATTERNS)),
        exclude_patterns=kwargs.pop("exclude_patterns", list(config.DEFAULT_EXCLUDE_PATTERNS)),
        **kwargs,
    )


@pytest.fixture
def cache_dir(tmp_path):
    return str(tmp_path / "_cache")


@pytest.fixture
def indexer(cache_dir):
    engine = ProjectIndexer(cache=CacheManager(cache_dir=cache_dir))
    engine.initialize()
    return engine


@pytest.fixture
def simple_project(tmp_path):
    return _create_project(tmp_path / "p", {
        "src/a.ts": "import { x } from './b'\n",
        "src/b.ts": "export const x = 1\n",
    })


@pytest.fixture
def app_project(tmp_path):
    return _create_project(tmp_path / "app", {
        "package.json": "{}",
        "src/config.ts": CONFIG_TS,
        "src/routes.ts": ROUTES_TS,
        "src/types.d.ts": "export interface Ignored {}\n",
        "node_modules/express/index.js": "function ignored() {}\n",
    })


class TestAnalyzeProject:
    """Test the analysis pipeline."""

    def test_two_file_project(self, indexer, simple_project):
        stats = indexer.analyze_project(_options(simple_project))
        assert stats["totalFiles"] == 2
        assert stats["totalDependencies"] == 1
        assert "duration_ms" in stats

        dep = indexer.get_all_dependencies()[0]
        assert dep.from_file == str(simple_project / "src" / "a.ts")
        assert dep.to == "./b"
        assert dep.resolved_to == str(simple_project / "src" / "b.ts")

    def test_excluded_files_skipped(self, indexer, app_project):
        stats = indexer.analyze_project(_options(app_project))
        # package.json, config.ts, routes.ts
        assert stats["totalFiles"] == 3
        names = {s.name for s in indexer.get_all_methods()}
        assert "Ignored" not in names
        assert "ignored" not in names

    def test_counts(self, indexer, app_project):
        stats = indexer.analyze_project(_options(app_project))
        assert stats["totalPaths"] == 2
        assert stats["totalDependencies"] == 3
        assert stats["totalMethods"] == len(indexer.get_all_methods())

    def test_json_files_recorded_but_not_scanned(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        package_json = str(app_project / "package.json")
        info = indexer.get_file_info(package_json)
        assert info is not None
        assert info.relative_path == "package.json"
        assert indexer.get_methods_in_file(package_json) == []

    def test_small_batches(self, cache_dir, app_project):
        engine = ProjectIndexer(cache=CacheManager(cache_dir=cache_dir), batch_size=1)
        stats = engine.analyze_project(_options(app_project))
        assert stats["totalFiles"] == 3
        assert engine.last_scan.summary()["files_scanned"] == 3

    def test_unreadable_file_recorded_as_error(self, indexer, tmp_path):
        project = _create_project(tmp_path / "bin", {"src/ok.ts": "function ok() {}\n"})
        (project / "src" / "bad.ts").write_bytes(b"\xff\xfe\x00invalid")
        stats = indexer.analyze_project(_options(project))
        assert stats["totalMethods"] == 1
        assert indexer.last_scan.errors[0]["file"] == str(project / "src" / "bad.ts")

    def test_scanner_failure_recorded_as_error(self, indexer, simple_project, monkeypatch):
        def explode(file_path):
            raise RuntimeError("scanner blew up")

        monkeypatch.setattr(indexer.scanner, "parse_file", explode)
        stats = indexer.analyze_project(_options(simple_project))
        assert stats["totalFiles"] == 0
        assert len(indexer.last_scan.errors) == 2
        assert indexer.last_scan.errors[0]["error"] == "scanner blew up"

    def test_malformed_tsconfig_paths_do_not_abort(self, indexer, tmp_path):
        project = _create_project(tmp_path / "bad-paths", {
            "tsconfig.json": '{"compilerOptions": {"paths": {"@app/*": [1], "@lib/*": "src/*"}}}',
            "src/a.ts": "import x from '@app/b'\nimport y from '@lib/c'\n",
        })
        stats = indexer.analyze_project(_options(project))
        assert stats["totalDependencies"] == 2
        assert indexer.last_scan.errors == []
        assert all(d.resolved_to is None for d in indexer.get_all_dependencies())

    def test_scan_summary_logged(self, indexer, simple_project, caplog):
        with caplog.at_level("INFO", logger="project_indexer.engine"):
            indexer.analyze_project(_options(simple_project))
        assert any("Scan finished: 2 files" in r.getMessage() for r in caplog.records)

    def test_last_indexed_set(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        assert indexer.get_project_stats()["lastIndexed"] != "1970-01-01T00:00:00"


class TestCaching:
    """Test snapshot caching and forced reindex."""

    def test_restored_from_cache(self, cache_dir, simple_project):
        first = ProjectIndexer(cache=CacheManager(cache_dir=cache_dir))
        first.analyze_project(_options(simple_project))

        # Change the tree; a cached run must not see it
        (simple_project / "src" / "c.ts").write_text("export const c = 3\n", encoding="utf-8")

        second = ProjectIndexer(cache=CacheManager(cache_dir=cache_dir))
        stats = second.analyze_project(_options(simple_project))
        assert stats["totalFiles"] == 2
        assert second.last_scan is None
        assert second.get_all_dependencies()[0].resolved_to == str(simple_project / "src" / "b.ts")

    def test_force_reindex(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        (simple_project / "src" / "c.ts").write_text("export const c = 3\n", encoding="utf-8")

        stats = indexer.analyze_project(_options(simple_project, force_reindex=True))
        assert stats["totalFiles"] == 3

    def test_different_patterns_different_entry(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        stats = indexer.analyze_project(_options(simple_project, include_patterns=["src/a.ts"]))
        assert stats["totalFiles"] == 1

    def test_reanalysis_replaces_index(self, indexer, simple_project, app_project):
        indexer.analyze_project(_options(app_project))
        indexer.analyze_project(_options(simple_project))
        assert {f.name for f in indexer.get_all_files()} == {"a.ts", "b.ts"}


class TestSearchMethods:
    """Test symbol search."""

    def test_case_insensitive_and_ranked(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        result = indexer.search_methods("config")
        names = [item["name"] for item in result["items"]]
        assert names[:3] == ["Config", "CONFIG_INIT", "loadConfig"]
        assert result["totalCount"] == len(result["items"])
        assert result["query"] == "config"

    def test_kind_filter(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        result = indexer.search_methods("config", kind="class")
        assert [item["name"] for item in result["items"]] == ["Config"]

    def test_regex_characters_escaped(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        assert indexer.search_methods("load.*")["totalCount"] == 0

    def test_include_usages(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        result = indexer.search_methods("loadConfig", kind="function", include_usages=True)
        item = result["items"][0]
        assert item["name"] == "loadConfig"
        assert item["usages"] == []

    def test_usages_by_specifier(self, indexer, tmp_path):
        project = _create_project(tmp_path / "usage", {
            "src/helpers.ts": "export function helpers() {}\n",
            "src/main.ts": "import { helpers } from './helpers'\n",
        })
        indexer.analyze_project(_options(project))
        result = indexer.search_methods("helpers", include_usages=True)
        assert result["items"][0]["usages"] == [f"{project / 'src' / 'main.ts'}:1"]

    def test_no_match(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        result = indexer.search_methods("doesNotExist")
        assert result["items"] == []
        assert result["totalCount"] == 0


class TestFindUsages:
    """Test file and name usage lookups."""

    def test_importers_of_file(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        usages = indexer.find_usages(file_path="src/b.ts", search_type="imports")
        assert len(usages) == 1
        assert usages[0]["file"] == str(simple_project / "src" / "a.ts")
        assert usages[0]["line"] == 1
        assert usages[0]["type"] == "import"
        assert usages[0]["resolvedTo"] == str(simple_project / "src" / "b.ts")

    def test_absolute_file_path(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        usages = indexer.find_usages(file_path=str(simple_project / "src" / "b.ts"), search_type="imports")
        assert len(usages) == 1

    def test_usages_search_ignores_file_path(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        assert indexer.find_usages(file_path="src/b.ts", search_type="usages") == []

    def test_by_name(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        usages = indexer.find_usages(method_name="express", search_type="usages")
        assert len(usages) == 1
        assert usages[0]["type"] == "usage"
        assert usages[0]["to"] == "express"
        assert "resolvedTo" not in usages[0]

    def test_unknown_file(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        assert indexer.find_usages(file_path="src/zzz.ts", search_type="imports") == []


class TestFindDependencies:
    """Test dependency graph traversal."""

    def test_outgoing_one_hop(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        result = indexer.find_dependencies("src/a.ts", direction="outgoing", depth=1)
        assert [d.to for d in result["outgoing"]] == ["./b"]
        assert result["incoming"] == []
        assert result["graph"] == {str(simple_project / "src" / "a.ts"): ["./b"]}

    def test_incoming(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        result = indexer.find_dependencies("./config", direction="incoming", depth=1)
        assert [d.from_file for d in result["incoming"]] == [str(app_project / "src" / "routes.ts")]
        assert result["outgoing"] == []

    @pytest.mark.parametrize("depth", list(range(1, 11)))
    def test_cycles_terminate(self, indexer, tmp_path, depth):
        project = _create_project(tmp_path / "cycle", {
            "src/a.ts": "import { b } from './b'\n",
            "src/b.ts": "import { a } from './a'\n",
        })
        indexer.analyze_project(_options(project))
        result = indexer.find_dependencies("a", direction="both", depth=depth)
        assert result["entity"] == "a"
        assert len(result["incoming"]) + len(result["outgoing"]) >= 1

    def test_unknown_entity(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        result = indexer.find_dependencies("nothing-here", depth=3)
        assert result == {"entity": "nothing-here", "incoming": [], "outgoing": [], "graph": {}}


class TestAccessors:
    """Test index accessors."""

    def test_empty_index(self, indexer):
        assert indexer.get_all_files() == []
        assert indexer.get_project_stats()["totalFiles"] == 0

    def test_paths_in_file(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        routes = indexer.get_paths_in_file(str(app_project / "src" / "routes.ts"))
        assert [(r.method.value, r.path) for r in routes] == [("GET", "/health"), ("POST", "/reload")]

    def test_reset(self, indexer, simple_project):
        indexer.analyze_project(_options(simple_project))
        indexer.reset()
        assert indexer.get_all_files() == []

    def test_symbol_kinds(self, indexer, app_project):
        indexer.analyze_project(_options(app_project))
        kinds = {s.name: s.kind for s in indexer.get_all_methods()}
        assert kinds["Config"] == SymbolType.CLASS
        assert kinds["loadConfig"] == SymbolType.FUNCTION
