import pytest

from gitread.patterns import glob_match, matches, matches_any, should_include, should_skip_dir


class TestGlob:
    def test_star_does_not_cross_separator(self):
        assert glob_match("*.go", "main.go")
        assert not glob_match("*.go", "a/main.go")

    def test_question_and_class(self):
        assert glob_match("file?.txt", "file1.txt")
        assert glob_match("[abc].py", "b.py")
        assert not glob_match("[!abc].py", "a.py")
        assert glob_match("[!abc].py", "d.py")

    def test_malformed_class_never_matches(self):
        assert not glob_match("[abc", "[abc")


class TestDirectoryAnchored:
    @pytest.mark.parametrize("path", ["vendor", "vendor/x.go", "vendor/a/b/c.go"])
    def test_matches_directory_and_descendants(self, path):
        assert matches("vendor/", path)

    @pytest.mark.parametrize("path", ["vendor2/x", "vendorfile", "src/vendor/x.go", "a/vendor"])
    def test_segment_exact_anchor(self, path):
        assert not matches("vendor/", path)

    def test_nested_anchor(self):
        assert matches("src/gen/", "src/gen/out.go")
        assert not matches("src/gen/", "src/generated/out.go")


class TestRecursive:
    def test_prefix_double_star(self):
        assert matches("vendor/**", "vendor/a/b.go")
        assert matches("vendor/**", "vendor/b.go")
        assert not matches("vendor/**", "vendor2/b.go")
        assert not matches("vendor/**", "src/vendor/b.go")

    def test_prefix_double_star_with_suffix_glob(self):
        assert matches("vendor/**/*.go", "vendor/a/b/c.go")
        assert matches("vendor/**/*.go", "vendor/c.go")
        assert not matches("vendor/**/*.go", "vendor/a/c.py")
        assert not matches("vendor/**/*.go", "vendors/a/c.go")

    def test_any_segment_form(self):
        assert matches("**/test/**", "pkg/test/a_test.go")
        assert matches("**/test/**", "test/a.go")
        assert not matches("**/test/**", "pkg/testing/a.go")

    def test_leading_double_star(self):
        assert matches("**/*.md", "README.md")
        assert matches("**/*.md", "docs/guide/intro.md")
        assert matches("**/docs/*.md", "a/b/docs/intro.md")
        assert not matches("**/docs/*.md", "a/b/docs2/intro.md")

    def test_bare_double_star(self):
        assert matches("**", "anything/at/all.txt")


class TestPlainGlob:
    def test_base_name_and_full_path(self):
        assert matches("*.go", "a/b/c.go")
        assert matches("main.go", "cmd/main.go")
        assert matches("cmd/*.go", "cmd/main.go")
        assert not matches("*.go", "a/b/c.py")

    def test_path_pattern_at_any_anchor_depth(self):
        assert matches("src/*.go", "project/src/main.go")
        assert not matches("src/*.go", "project/src/sub/main.go")
        assert not matches("src/*.go", "project/lib/main.go")

    def test_backslashes_are_normalized(self):
        assert matches("*.go", "a\\b\\c.go")

    def test_empty_inputs(self):
        assert not matches("", "a.go")
        assert not matches("*.go", "")


class TestIncludeExclude:
    def test_matches_any_empty_is_noop(self):
        assert matches_any([], "whatever")

    def test_matches_any(self):
        assert matches_any(["*.py", "*.go"], "x/y.go")
        assert not matches_any(["*.py"], "x/y.go")

    def test_exclude_wins(self):
        assert not should_include("vendor/a.go", ["*.go"], ["vendor/"])
        assert should_include("src/a.go", ["*.go"], ["vendor/"])

    def test_empty_include_means_all(self):
        assert should_include("README", [], [])
        assert should_include("README", [], ["*.go"])

    def test_include_filters(self):
        assert not should_include("README", ["*.go"], [])


class TestShouldSkipDir:
    def test_anchored(self):
        assert should_skip_dir("vendor", ["vendor/"])
        assert should_skip_dir("vendor/sub", ["vendor/"])
        assert not should_skip_dir("vendor2", ["vendor/"])

    def test_recursive(self):
        assert should_skip_dir("node_modules", ["node_modules/**"])
        assert not should_skip_dir("node_modules2", ["node_modules/**"])
        assert should_skip_dir("a/test", ["**/test/**"])
        assert should_skip_dir("a/b/node_modules", ["**/node_modules/"])

    def test_bare_name_is_exact_segment(self):
        assert should_skip_dir("vendor", ["vendor"])
        assert should_skip_dir("src/vendor", ["vendor"])
        assert not should_skip_dir("vendorfile", ["vendor"])
        assert not should_skip_dir("src/myvendor", ["vendor"])

    def test_path_star_only_at_exact_depth(self):
        assert should_skip_dir("a/b/c", ["a/b/*"])
        assert not should_skip_dir("a/b", ["a/b/*"])
        assert not should_skip_dir("x/a/b/c", ["a/b/*"])

    def test_file_globs_never_prune(self):
        assert not should_skip_dir("src", ["*.go"])
        assert not should_skip_dir("src", ["src/*.go"])

    def test_no_patterns(self):
        assert not should_skip_dir("anything", [])
