import pytest

from coderag.ingest import index_project, load_sources, scan_files


def test_index_project_assigns_sequential_ids_across_files(tmp_path):
    (tmp_path / "src").mkdir()
    first = tmp_path / "src" / "a.ts"
    second = tmp_path / "b.md"
    first.write_text("abcdefgh", encoding="utf-8")
    second.write_text("xyz", encoding="utf-8")

    chunks = index_project(tmp_path, [first, second], chunk_size=4, chunk_overlap=0)

    assert [chunk.id for chunk in chunks] == [0, 1, 2]
    assert [chunk.rel_path for chunk in chunks] == ["src/a.ts", "src/a.ts", "b.md"]
    assert [chunk.text for chunk in chunks] == ["abcd", "efgh", "xyz"]


def test_unreadable_files_are_skipped(tmp_path):
    good = tmp_path / "good.ts"
    good.write_text("const ok = 1", encoding="utf-8")
    binary = tmp_path / "bad.ts"
    binary.write_bytes(b"\xff\xfe\xfa invalid")
    missing = tmp_path / "missing.ts"

    chunks = index_project(tmp_path, [missing, binary, good], chunk_size=100, chunk_overlap=0)

    assert len(chunks) == 1
    assert chunks[0].id == 0
    assert chunks[0].rel_path == "good.ts"


def test_load_sources_reports_skip_reason(tmp_path):
    good = tmp_path / "good.ts"
    good.write_text("x = 1", encoding="utf-8")

    sources = load_sources(tmp_path, [tmp_path / "gone.ts", good])

    assert [source.rel_path for source in sources] == ["gone.ts", "good.ts"]
    assert not sources[0].readable
    assert sources[0].skip_reason
    assert sources[1].readable
    assert sources[1].text == "x = 1"


def test_scan_files_filters_extensions_and_ignored_dirs(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "src" / "app.ts").write_text("app", encoding="utf-8")
    (tmp_path / "README.md").write_text("readme", encoding="utf-8")
    (tmp_path / "logo.png").write_bytes(b"png")
    (tmp_path / "node_modules" / "pkg" / "index.js").write_text("dep", encoding="utf-8")

    files = scan_files(tmp_path, (".ts", ".md", ".js"), frozenset({"node_modules"}))

    assert files == sorted([tmp_path / "README.md", tmp_path / "src" / "app.ts"])


def test_scan_files_rejects_bad_roots(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_files(tmp_path / "nope", (".ts",), frozenset())

    file_root = tmp_path / "file.ts"
    file_root.write_text("x", encoding="utf-8")
    with pytest.raises(NotADirectoryError):
        scan_files(file_root, (".ts",), frozenset())
