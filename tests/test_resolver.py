"""Tests for NameResolver and name splitting helpers."""

import errno

import pytest

from scripthaus.config import Environment
from scripthaus.core.probe import FakeStatProbe, OsStatProbe
from scripthaus.core.resolver import NameResolver, parent_dir, split_script_name
from scripthaus.errors import (
    HomeDirError,
    InvalidNameError,
    NamespaceNotSupportedError,
    PlaybookIsDirectoryError,
    PlaybookNotFoundError,
    PlaybookPermissionError,
    PlaybookStatError,
    RootNotFoundError,
)

HOME = "/home/alice"
OUTER = "/work/outer"
INNER = "/work/outer/inner"
CWD = "/work/outer/inner/src"

FILES = [
    f"{HOME}/scripthaus/scripthaus.md",
    f"{HOME}/scripthaus/tools.md",
    f"{OUTER}/scripthaus.md",
    f"{OUTER}/other.md",
    f"{INNER}/scripthaus.md",
    f"{INNER}/build.md",
    f"{INNER}/sub/scripthaus.md",
    f"{CWD}/local.md",
]


class TestSplitScriptName:
    """Tests for split_script_name."""

    @pytest.mark.parametrize("name, expected", [
        ("^foo", ("^", "foo")),
        ("^", ("^", "")),
        (".foo", (".", "foo")),
        ("..foo", ("..", "foo")),
        ("hello", ("", "hello")),
        ("@sawka::foo", ("@sawka", "foo")),
        (".hello.md::test", (".hello.md", "test")),
        ("./foo.md::bar", ("./foo.md", "bar")),
        ("a.md::b::c", ("a.md", "b::c")),
    ])
    def test_split(self, name, expected):
        assert split_script_name(name) == expected


class TestParentDir:
    """Tests for parent_dir."""

    def test_parent_of_nested_dir(self):
        assert parent_dir("/a/b") == "/a"

    def test_trailing_slash_is_stripped(self):
        assert parent_dir("/a/b/") == "/a"

    def test_parent_of_top_level_dir_is_root(self):
        assert parent_dir("/a") == "/"

    def test_root_has_no_parent(self):
        assert parent_dir("/") == ""

    def test_relative_and_empty_have_no_parent(self):
        assert parent_dir("a/b") == ""
        assert parent_dir("") == ""


class TestNameResolver:
    """Tests for NameResolver against a fake filesystem."""

    @pytest.fixture
    def env(self):
        return Environment(variables={"HOME": HOME}, cwd=CWD)

    @pytest.fixture
    def probe(self):
        return FakeStatProbe(files=FILES)

    @pytest.fixture
    def resolver(self, env, probe):
        return NameResolver(environment=env, probe=probe)

    def test_stdin_needs_no_filesystem(self, resolver, probe):
        playbook = resolver.resolve("-")

        assert playbook.resolved_file == "-"
        assert playbook.canonical_name == "-"
        assert playbook.is_stdin
        assert probe.probed == []

    @pytest.mark.parametrize("name", ["@sawka::foo", "@", "@x/y.md"])
    def test_namespace_always_fails(self, resolver, name):
        with pytest.raises(NamespaceNotSupportedError, match="@-prefix not supported"):
            resolver.resolve(name)

    def test_global_root(self, resolver):
        playbook = resolver.resolve("^")

        assert playbook.resolved_file == f"{HOME}/scripthaus/scripthaus.md"
        assert playbook.canonical_name == "^"
        assert playbook.project_dir is None

    def test_global_named_playbook(self, resolver):
        playbook = resolver.resolve("^tools.md")

        assert playbook.resolved_file == f"{HOME}/scripthaus/tools.md"
        assert playbook.canonical_name == "^tools.md"

    def test_global_root_from_scripthaus_home(self, probe):
        env = Environment(variables={"HOME": "/nowhere", "SCRIPTHAUS_HOME": OUTER}, cwd=CWD)
        resolver = NameResolver(environment=env, probe=probe)

        playbook = resolver.resolve("^")

        assert playbook.resolved_file == f"{OUTER}/scripthaus.md"

    def test_global_root_without_home(self, probe):
        resolver = NameResolver(environment=Environment(variables={}, cwd=CWD), probe=probe)

        with pytest.raises(HomeDirError, match="SCRIPTHAUS_HOME and HOME not set"):
            resolver.resolve("^")

    def test_single_dot_finds_nearest_root(self, resolver):
        playbook = resolver.resolve(".")

        assert playbook.resolved_file == f"{INNER}/scripthaus.md"
        assert playbook.project_dir == INNER
        assert playbook.canonical_name == "."

    def test_double_dot_finds_outer_root(self, resolver):
        playbook = resolver.resolve("..")

        assert playbook.resolved_file == f"{OUTER}/scripthaus.md"
        assert playbook.project_dir == OUTER

    def test_double_dot_with_named_playbook(self, resolver):
        playbook = resolver.resolve("..other.md")

        assert playbook.resolved_file == f"{OUTER}/other.md"
        assert playbook.canonical_name == ".other.md"

    def test_too_many_dots(self, resolver):
        with pytest.raises(RootNotFoundError, match=r"depth = 3"):
            resolver.resolve("...")

    def test_current_dir_can_be_root_at_depth_one(self, probe):
        resolver = NameResolver(environment=Environment(variables={"HOME": HOME}, cwd=INNER), probe=probe)

        assert resolver.resolve(".").project_dir == INNER
        assert resolver.resolve("..").project_dir == OUTER

    def test_no_root_anywhere(self, probe):
        resolver = NameResolver(environment=Environment(variables={"HOME": HOME}, cwd="/tmp/elsewhere"), probe=probe)

        with pytest.raises(RootNotFoundError, match="in any parent directory above '/tmp/elsewhere'"):
            resolver.resolve(".")

    def test_empty_name_is_project_default(self, resolver):
        playbook = resolver.resolve("")

        assert playbook.resolved_file == f"{INNER}/scripthaus.md"
        assert playbook.project_dir == INNER

    def test_project_relative_playbook(self, resolver):
        playbook = resolver.resolve(".build.md")

        assert playbook.resolved_file == f"{INNER}/build.md"
        assert playbook.canonical_name == ".build.md"

    def test_bare_name_falls_back_to_project(self, resolver):
        playbook = resolver.resolve("build.md")

        assert playbook.resolved_file == f"{INNER}/build.md"
        assert playbook.project_dir == INNER

    def test_bare_name_prefers_literal_file(self, resolver):
        playbook = resolver.resolve("local.md")

        assert playbook.resolved_file == f"{CWD}/local.md"
        assert playbook.canonical_name == f"{CWD}/local.md"
        assert playbook.project_dir is None

    def test_bare_name_literal_wins_over_project_file(self, env):
        probe = FakeStatProbe(files=FILES + [f"{CWD}/build.md"])
        resolver = NameResolver(environment=env, probe=probe)

        assert resolver.resolve("build.md").resolved_file == f"{CWD}/build.md"

    def test_subdirectory_with_trailing_slash(self, resolver):
        playbook = resolver.resolve(".sub/")

        assert playbook.resolved_file == f"{INNER}/sub/scripthaus.md"

    def test_subdirectory_without_trailing_slash(self, resolver):
        playbook = resolver.resolve(".sub")

        assert playbook.resolved_file == f"{INNER}/sub/scripthaus.md"
        assert playbook.canonical_name == ".sub/scripthaus.md"

    def test_relative_literal_path(self, resolver):
        playbook = resolver.resolve("./local.md")

        assert playbook.resolved_file == f"{CWD}/local.md"
        assert playbook.project_dir is None

    def test_parent_literal_path(self, resolver):
        playbook = resolver.resolve("../build.md")

        assert playbook.resolved_file == f"{INNER}/build.md"
        assert playbook.canonical_name == f"{INNER}/build.md"

    def test_absolute_literal_path(self, resolver):
        playbook = resolver.resolve(f"{OUTER}/other.md")

        assert playbook.resolved_file == f"{OUTER}/other.md"

    def test_missing_playbook_reports_both_names(self, resolver):
        with pytest.raises(PlaybookNotFoundError) as exc_info:
            resolver.resolve(".missing.md")

        message = str(exc_info.value)
        assert "'.missing.md'" in message
        assert f"'{INNER}/missing.md'" in message
        assert exc_info.value.path == f"{INNER}/missing.md"

    def test_near_miss_prefix_is_rejected(self, resolver):
        with pytest.raises(InvalidNameError, match="invalid prefix character '\\*'"):
            resolver.resolve(".*foo")

    def test_find_prefix_dir_rejects_non_dots(self, resolver):
        with pytest.raises(InvalidNameError, match="invalid prefix character 'x'"):
            resolver.find_prefix_dir(".x")

    def test_unrecognized_name(self, resolver):
        with pytest.raises(InvalidNameError, match="invalid playbook name"):
            resolver.resolve("*foo")

    def test_permission_error_during_walk_keeps_searching(self):
        locked = f"{CWD}/locked"
        probe = FakeStatProbe(files=FILES, dirs=[locked], denied=[locked])
        resolver = NameResolver(environment=Environment(variables={}, cwd=locked), probe=probe)

        playbook = resolver.resolve(".")

        assert playbook.project_dir == INNER

    def test_permission_error_during_walk_in_strict_mode(self):
        locked = f"{CWD}/locked"
        probe = FakeStatProbe(files=FILES, dirs=[locked], denied=[locked])
        resolver = NameResolver(environment=Environment(variables={}, cwd=locked), probe=probe, strict_permissions=True)

        with pytest.raises(PlaybookPermissionError):
            resolver.resolve(".")

    def test_permission_error_on_playbook(self, env):
        probe = FakeStatProbe(files=FILES, denied=[f"{INNER}/build.md"])
        resolver = NameResolver(environment=env, probe=probe)

        with pytest.raises(PlaybookPermissionError, match="permission error") as exc_info:
            resolver.resolve(".build.md")
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_other_stat_error_on_playbook(self, env):
        failure = OSError(errno.EIO, "Input/output error")
        probe = FakeStatProbe(files=FILES, errors={f"{INNER}/build.md": failure})
        resolver = NameResolver(environment=env, probe=probe)

        with pytest.raises(PlaybookStatError, match="stat error") as exc_info:
            resolver.resolve(".build.md")
        assert exc_info.value.__cause__ is failure

    def test_other_stat_error_during_walk(self):
        failure = OSError(errno.EIO, "Input/output error")
        probe = FakeStatProbe(files=FILES, errors={f"{CWD}/scripthaus.md": failure})
        resolver = NameResolver(environment=Environment(variables={}, cwd=CWD), probe=probe)

        with pytest.raises(PlaybookStatError, match="cannot access playbook file") as exc_info:
            resolver.resolve(".")
        assert exc_info.value.__cause__ is failure

    def test_relative_scripthaus_home_uses_environment_cwd(self):
        probe = FakeStatProbe(files=["/work/sh-home/scripthaus.md", "/work/sh-home/tools.md"])
        env = Environment(variables={"SCRIPTHAUS_HOME": "sh-home"}, cwd="/work")
        resolver = NameResolver(environment=env, probe=probe)

        playbook = resolver.resolve("^tools.md")

        assert playbook.resolved_file == "/work/sh-home/tools.md"
        assert playbook.canonical_name == "^tools.md"
        assert resolver.resolve("^").canonical_name == "^"

    def test_directory_named_like_playbook(self, env):
        probe = FakeStatProbe(files=FILES, dirs=[f"{INNER}/weird/scripthaus.md"])
        resolver = NameResolver(environment=env, probe=probe)

        with pytest.raises(PlaybookIsDirectoryError, match="is a directory"):
            resolver.resolve(".weird")

    def test_marker_directory_is_not_a_root(self):
        probe = FakeStatProbe(files=FILES, dirs=[f"{CWD}/scripthaus.md"])
        resolver = NameResolver(environment=Environment(variables={}, cwd=CWD), probe=probe)

        assert resolver.resolve(".").project_dir == INNER


class TestNameResolverOnDisk:
    """Tests for NameResolver against the real filesystem."""

    @pytest.fixture
    def tree(self, tmp_path):
        outer = tmp_path / "outer"
        inner = outer / "inner"
        cwd = inner / "src"
        cwd.mkdir(parents=True)
        (outer / "scripthaus.md").write_text("# outer\n")
        (inner / "scripthaus.md").write_text("# inner\n")
        (cwd / "notes.md").write_text("# notes\n")
        home = tmp_path / "home"
        home.mkdir()
        (home / "scripthaus.md").write_text("# global\n")
        return tmp_path

    def _resolver(self, tree):
        env = Environment(
            variables={"SCRIPTHAUS_HOME": str(tree / "home")},
            cwd=str(tree / "outer" / "inner" / "src"),
        )
        return NameResolver(environment=env, probe=OsStatProbe())

    def test_global(self, tree):
        playbook = self._resolver(tree).resolve("^")
        assert playbook.resolved_file == str(tree / "home" / "scripthaus.md")

    def test_nested_roots(self, tree):
        resolver = self._resolver(tree)

        assert resolver.resolve(".").resolved_file == str(tree / "outer" / "inner" / "scripthaus.md")
        assert resolver.resolve("..").resolved_file == str(tree / "outer" / "scripthaus.md")

    def test_literal_file_in_cwd(self, tree):
        playbook = self._resolver(tree).resolve("notes.md")

        assert playbook.resolved_file == str(tree / "outer" / "inner" / "src" / "notes.md")
        assert playbook.project_dir is None

    def test_read_bytes(self, tree):
        playbook = self._resolver(tree).resolve("..")

        assert playbook.read_bytes() == b"# outer\n"
