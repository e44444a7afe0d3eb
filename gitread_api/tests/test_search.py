import os
import threading

import pytest

from gitread.search import (
    MatchLine,
    MatchType,
    SearchMode,
    SearchOutcome,
    SearchRequest,
    SearchRequestError,
    assemble,
    scan_content,
    scan_filename,
    search,
    search_many,
)


def paths(outcome):
    return [r.path for r in outcome.results]


class TestScanContent:
    def test_and_requires_every_keyword(self, tmp_path):
        f = tmp_path / "x.go"
        f.write_text("alpha\nbeta\ngamma\n")
        assert [m.line_number for m in scan_content(f, ["alpha", "gamma"], SearchMode.AND)] == [1, 3]
        assert scan_content(f, ["alpha", "delta"], SearchMode.AND) == []

    def test_or_reports_union_without_duplicates(self, tmp_path):
        f = tmp_path / "x.go"
        f.write_text("alpha beta\nnothing\nbeta\n")
        lines = scan_content(f, ["alpha", "beta"], SearchMode.OR)
        assert [m.line_number for m in lines] == [1, 3]

    def test_case_insensitive(self, tmp_path):
        f = tmp_path / "x.go"
        f.write_text("func Main() {}\n")
        assert len(scan_content(f, ["main"])) == 1

    def test_context_lines_attached_not_matched(self, tmp_path):
        f = tmp_path / "x.txt"
        f.write_text("one\ntwo\nthree key\nfour\nfive\n")
        lines = scan_content(f, ["key"], context_lines=1)
        assert len(lines) == 1
        assert lines[0].line_number == 3
        assert lines[0].context_before == ("two",)
        assert lines[0].context_after == ("four",)

    def test_context_clipped_at_boundaries(self, tmp_path):
        f = tmp_path / "x.txt"
        f.write_text("key first\nsecond\n")
        (line,) = scan_content(f, ["key"], context_lines=3)
        assert line.context_before == ()
        assert line.context_after == ("second",)

    def test_binary_file_skipped(self, tmp_path):
        f = tmp_path / "blob.bin"
        f.write_bytes(b"key\x00\x01\x02")
        assert scan_content(f, ["key"]) == []

    def test_missing_file_skipped(self, tmp_path):
        assert scan_content(tmp_path / "gone.txt", ["key"]) == []

    def test_oversized_file_skipped(self, tmp_path):
        f = tmp_path / "big.txt"
        f.write_text("key\n" * 100)
        assert scan_content(f, ["key"], max_file_bytes=10) == []

    def test_crlf_line_endings(self, tmp_path):
        f = tmp_path / "win.txt"
        f.write_bytes(b"a\r\nkey\r\n")
        (line,) = scan_content(f, ["key"])
        assert line.line_number == 2
        assert line.content == "key"


class TestScanFilename:
    def test_and_or(self):
        assert scan_filename("src/main_test.go", ["main", "test"], SearchMode.AND) == MatchLine(0, "main_test.go")
        assert scan_filename("src/main.go", ["main", "test"], SearchMode.AND) is None
        assert scan_filename("src/main.go", ["main", "test"], SearchMode.OR) == MatchLine(0, "main.go")

    def test_only_base_name(self):
        assert scan_filename("main/util.go", ["main"]) is None

    def test_case_insensitive(self):
        assert scan_filename("README.md", ["readme"]) is not None


class TestAssemble:
    def test_merges_both(self):
        content = {"main.go": (MatchLine(3, "func main()"),)}
        names = {"main.go": MatchLine(0, "main.go")}
        results, truncated = assemble(content, names, 10)
        assert not truncated
        (r,) = results
        assert r.match_type is MatchType.BOTH
        assert [m.line_number for m in r.matches] == [3, 0]

    def test_single_stream_types_and_order(self):
        content = {"b.go": (MatchLine(1, "x"),)}
        names = {"a.go": MatchLine(0, "a.go")}
        results, _ = assemble(content, names, 10, order=["a.go", "b.go"])
        assert [(r.path, r.match_type) for r in results] == [
            ("a.go", MatchType.FILENAME),
            ("b.go", MatchType.CONTENT),
        ]

    def test_truncates_whole_paths(self):
        content = {f"f{i}.go": (MatchLine(1, "x"), MatchLine(2, "x")) for i in range(5)}
        results, truncated = assemble(content, {}, 3)
        assert truncated
        assert len(results) == 3
        assert all(len(r.matches) == 2 for r in results)

    def test_inputs_not_mutated(self):
        content = {"a.go": (MatchLine(1, "x"),)}
        names = {"a.go": MatchLine(0, "a.go")}
        assemble(content, names, 10)
        assert content == {"a.go": (MatchLine(1, "x"),)}
        assert names == {"a.go": MatchLine(0, "a.go")}


@pytest.fixture
def repo(make_tree):
    return make_tree({
        "a/b.go": "func main(){}\n",
        "vendor/dep.go": "main\n",
        "main.go": "package main\n\nfunc main() {}\n",
        "docs/notes.md": "alpha\nbeta\n",
        "docs/alpha_only.md": "alpha\n",
    })


class TestSearch:
    def test_exclude_scenario(self, repo):
        outcome = search(SearchRequest(root=repo, keywords=["main"], exclude_patterns=["vendor/"], limit=10))
        assert paths(outcome) == ["a/b.go", "main.go"]

    def test_exclude_scenario_single_result(self, make_tree):
        root = make_tree({"a/b.go": "func main(){}", "vendor/dep.go": "main"}, name="scenario")
        outcome = search(SearchRequest(root=root, keywords=["main"], mode="and",
                                       exclude_patterns=["vendor/"], limit=10))
        assert paths(outcome) == ["a/b.go"]
        assert outcome.results[0].match_type is MatchType.CONTENT

    def test_filename_and_content_merge(self, repo):
        outcome = search(SearchRequest(root=repo, keywords=["main"], include_filenames=True,
                                       include_patterns=["main.go"], limit=10))
        (r,) = outcome.results
        assert r.path == "main.go"
        assert r.match_type is MatchType.BOTH
        assert r.matches[-1] == MatchLine(0, "main.go")

    def test_filename_only_match_for_binary(self, make_tree):
        root = make_tree({"key.bin": b"\x00\x00key"}, name="bin")
        outcome = search(SearchRequest(root=root, keywords=["key"], include_filenames=True))
        assert [(r.path, r.match_type) for r in outcome.results] == [("key.bin", MatchType.FILENAME)]

    def test_or_superset_of_and(self, repo):
        base = dict(root=repo, keywords=["alpha", "beta"], limit=50)
        and_paths = set(paths(search(SearchRequest(mode="and", **base))))
        or_paths = set(paths(search(SearchRequest(mode="or", **base))))
        assert and_paths == {"docs/notes.md"}
        assert and_paths <= or_paths
        assert "docs/alpha_only.md" in or_paths

    def test_removing_keyword_from_file_drops_it(self, repo):
        req = SearchRequest(root=repo, keywords=["alpha", "beta"], limit=50)
        assert "docs/notes.md" in paths(search(req))
        (repo / "docs/notes.md").write_text("alpha\n")
        assert "docs/notes.md" not in paths(search(req))

    def test_string_keyword_not_split_into_characters(self, repo):
        outcome = search(SearchRequest(root=repo, keywords="alpha", mode="or", limit=50))
        assert paths(outcome) == ["docs/alpha_only.md", "docs/notes.md"]

    def test_idempotent(self, repo):
        req = SearchRequest(root=repo, keywords=["main"], include_filenames=True, limit=10)
        assert search(req) == search(req)

    def test_truncation(self, make_tree):
        root = make_tree({f"f{i:02d}.txt": "key\n" for i in range(12)}, name="many")
        outcome = search(SearchRequest(root=root, keywords=["key"], limit=5))
        assert len(outcome.results) == 5
        assert outcome.truncated
        assert paths(outcome) == [f"f{i:02d}.txt" for i in range(5)]

    def test_exact_limit_not_truncated(self, make_tree):
        root = make_tree({f"f{i}.txt": "key\n" for i in range(3)}, name="three")
        outcome = search(SearchRequest(root=root, keywords=["key"], limit=3))
        assert len(outcome.results) == 3
        assert not outcome.truncated

    def test_context_scenario(self, make_tree):
        root = make_tree({"x.txt": "l1\nl2\nneedle\nl4\nl5\n"}, name="ctx")
        outcome = search(SearchRequest(root=root, keywords=["needle"], context_lines=1))
        (r,) = outcome.results
        assert [m.line_number for m in r.matches] == [3]
        assert r.matches[0].context_before == ("l2",)
        assert r.matches[0].context_after == ("l4",)

    def test_tracked_restriction(self, repo):
        outcome = search(SearchRequest(root=repo, keywords=["main"], tracked={"main.go"}))
        assert paths(outcome) == ["main.go"]

    def test_symlink_outside_root_not_searched(self, make_tree, tmp_path):
        secret = tmp_path / "outside_secret.txt"
        secret.write_text("TOPSECRET password")
        root = make_tree({"a.txt": "nothing here"}, name="linked")
        os.symlink(secret, root / "link.txt")
        assert search(SearchRequest(root=root, keywords=["topsecret"])).results == ()

    def test_cancelled_search_returns_partial(self, repo):
        cancel = threading.Event()
        cancel.set()
        outcome = search(SearchRequest(root=repo, keywords=["main"], cancel=cancel))
        assert outcome == SearchOutcome(results=(), truncated=False, cancelled=True)

    def test_completed_search_not_cancelled(self, repo):
        outcome = search(SearchRequest(root=repo, keywords=["main"], cancel=threading.Event()))
        assert not outcome.cancelled
        assert paths(outcome)


class TestValidation:
    @pytest.mark.parametrize("kwargs", [
        {"keywords": []},
        {"keywords": ["  "]},
        {"keywords": ["x"], "limit": 0},
        {"keywords": ["x"], "limit": -1},
        {"keywords": ["x"], "context_lines": -1},
    ])
    def test_rejected_before_traversal(self, tmp_path, kwargs):
        with pytest.raises(SearchRequestError):
            search(SearchRequest(root=tmp_path, **kwargs))

    def test_missing_root(self, tmp_path):
        with pytest.raises(SearchRequestError):
            search(SearchRequest(root=tmp_path / "missing", keywords=["x"]))

    def test_single_string_keyword_is_one_keyword(self, tmp_path):
        req = SearchRequest(root=tmp_path, keywords="main")
        assert req.keywords == ("main",)

    def test_bad_mode(self, tmp_path):
        with pytest.raises(SearchRequestError):
            SearchRequest(root=tmp_path, keywords=["x"], mode="xor")

    def test_is_value_error(self):
        assert issubclass(SearchRequestError, ValueError)


class TestSearchMany:
    def test_runs_each_request(self, make_tree, tmp_path):
        one = make_tree({"a.txt": "key"}, name="one")
        two = make_tree({"b.txt": "nothing"}, name="two")
        out = search_many({
            "one": SearchRequest(root=one, keywords=["key"]),
            "two": SearchRequest(root=two, keywords=["key"]),
            "bad": SearchRequest(root=tmp_path / "missing", keywords=["key"]),
        }, max_workers=2)
        assert list(out) == ["one", "two", "bad"]
        assert paths(out["one"]) == ["a.txt"]
        assert paths(out["two"]) == []
        assert isinstance(out["bad"], SearchRequestError)
