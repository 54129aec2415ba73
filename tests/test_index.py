"""Tests for the keyword index: walking, exclusion, scoring, snippets and re-index."""
import pytest

from project_chat.common.config import IndexConfig
from project_chat.index import (
    IndexedFile,
    ProjectIndex,
    extract_snippet,
    index_dir,
    search_index,
    walk_dir,
)


def _doc(path, content):
    return IndexedFile.from_content(path, content, "doc")


def test_walk_dir_prunes_excluded_dirs_at_any_depth(tmp_path):
    (tmp_path / "a" / "node_modules" / "x").mkdir(parents=True)
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "a" / "keep.md").write_text("keep")
    (tmp_path / "a" / "node_modules" / "x" / "drop.md").write_text("drop")
    (tmp_path / "node_modules" / "drop.md").write_text("drop")

    paths = walk_dir(tmp_path, ["node_modules"])
    assert paths == ["a/keep.md"]


def test_walk_dir_missing_directory_is_empty(tmp_path):
    assert walk_dir(tmp_path / "nope", []) == []


def test_index_dir_filters_extensions_and_sets_category(project_dir):
    files = index_dir(project_dir / "docs", "doc", [".md"], ["node_modules"], 100_000)
    assert [f.path for f in files] == ["README.md", "guides/usage.md"]
    assert all(f.category == "doc" for f in files)
    assert files[0].search_content == files[0].content.lower()


def test_index_dir_size_boundary_is_inclusive(tmp_path):
    (tmp_path / "exact.md").write_text("x" * 10)
    (tmp_path / "over.md").write_text("x" * 11)
    files = index_dir(tmp_path, "doc", [".md"], [], 10)
    assert [f.path for f in files] == ["exact.md"]


def test_index_dir_skips_undecodable_files(tmp_path):
    (tmp_path / "good.md").write_text("fine")
    (tmp_path / "bad.md").write_bytes(b"\xff\xfe\x00bad")
    files = index_dir(tmp_path, "doc", [".md"], [], 100_000)
    assert [f.path for f in files] == ["good.md"]


def test_index_dir_none_directory():
    assert index_dir(None, "code", [".py"], [], 100) == []


def test_project_index_excludes_node_modules(index_config):
    index = ProjectIndex(index_config)
    paths = [f.path for f in index.files]
    assert not any("node_modules" in p for p in paths)
    assert index.file_count == 3
    assert [f.path for f in index.code()] == ["lib/client.ts"]


def test_search_scores_content_and_path_bonus():
    files = [
        _doc("a.md", "install install"),
        _doc("install.md", "nothing here"),
        _doc("c.md", "unrelated"),
    ]
    results = search_index(files, "install")
    # install.md: 0 occurrences + 5 path bonus beats a.md's 2 occurrences
    assert [f.path for f in results] == ["install.md", "a.md"]


def test_search_counts_non_overlapping_occurrences():
    files = [_doc("a.md", "aaaa"), _doc("b.md", "aaa")]
    results = search_index(files, "aa")
    # "aaaa" has 2 non-overlapping matches, "aaa" has 1
    assert [f.path for f in results] == ["a.md", "b.md"]


def test_search_is_stable_for_ties():
    files = [_doc(f"f{i}.md", "token") for i in range(8)]
    first = [f.path for f in search_index(files, "token", max_results=8)]
    second = [f.path for f in search_index(files, "token", max_results=8)]
    assert first == [f"f{i}.md" for i in range(8)]
    assert first == second


def test_search_respects_cap():
    files = [_doc(f"f{i}.md", "word " * (i + 1)) for i in range(20)]
    assert len(search_index(files, "word", max_results=3)) == 3
    assert search_index(files, "word", max_results=0) == []
    assert len(search_index(files, "word")) == 5


def test_search_negative_cap_rejected():
    with pytest.raises(ValueError):
        search_index([], "x", max_results=-1)


@pytest.mark.parametrize("query", ["", "   ", "\t\n"])
def test_search_empty_query_returns_nothing(query):
    assert search_index([_doc("a.md", "anything")], query) == []


def test_search_is_case_insensitive():
    results = search_index([_doc("a.md", "Install It")], "INSTALL")
    assert [f.path for f in results] == ["a.md"]


def test_extract_snippet_window_around_first_match():
    content = "\n".join(f"line {i}" for i in range(20))
    snippet = extract_snippet(content, "line 10", context_lines=2)
    # "line" matches line 0 first
    assert snippet == "line 0\nline 1\nline 2"

    snippet = extract_snippet(content + "\nneedle here\nafter", "needle", context_lines=1)
    assert snippet == "line 19\nneedle here\nafter"


def test_extract_snippet_falls_back_to_head():
    content = "\n".join(f"row {i}" for i in range(20))
    assert extract_snippet(content, "absent", context_lines=3) == "\n".join(f"row {i}" for i in range(7))


def test_reindex_picks_up_new_files_and_swaps_snapshot(index_config, project_dir):
    index = ProjectIndex(index_config)
    before = index.files
    (project_dir / "docs" / "faq.md").write_text("# FAQ\n")

    count = index.reindex()

    assert count == 4
    assert index.find("faq.md") is not None
    # Old snapshot is untouched
    assert len(before) == 3
    assert before is not index.files


def test_read_api_spec(tmp_path):
    spec = tmp_path / "openapi.yaml"
    spec.write_text("openapi: 3.0.0\n")
    index = ProjectIndex(IndexConfig(api_spec_path=str(spec)))
    assert index.read_api_spec() == "openapi: 3.0.0\n"
    assert ProjectIndex(IndexConfig(api_spec_path=str(tmp_path / "missing.yaml"))).read_api_spec() is None
    assert ProjectIndex(IndexConfig()).file_count == 0
