"""Playbook name resolution.

Turns the names users type (``^``, ``.build.md``, ``..``, ``./x.md``,
``deploy.md``) into absolute playbook paths by walking the directory tree
looking for scripthaus.md project markers.
"""

import logging
import os
import re
from typing import Optional, Tuple

from scripthaus.config import DEFAULT_PLAYBOOK_FILE, STDIN_PLAYBOOK, Environment
from scripthaus.core.models import ResolvedPlaybook
from scripthaus.core.probe import OsStatProbe, PathInfo, StatProbe
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

logger = logging.getLogger(__name__)

GLOBAL_PREFIX = "^"
PROJECT_PREFIX = "."
NAMESPACE_PREFIX = "@"
LITERAL_PATH_PREFIXES = ("./", "/", "../")

# ^, a run of dots, or nothing, followed by an identifier start or the end
PLAYBOOK_PREFIX_PATTERN = re.compile(r'^(\^|\.*)(?:[a-zA-Z_]|$)')
DOT_PREFIX_PATTERN = re.compile(r'^(\.+)[a-zA-Z_]')
# what a user meant as a prefix: everything before the first identifier char
LOOSE_PREFIX_PATTERN = re.compile(r'^[^a-zA-Z_]*')


def split_script_name(script_name: str) -> Tuple[str, str]:
    """Split a script name into (playbook, command).

    Examples:
        "@sawka::foo"     -> ("@sawka", "foo")
        "^foo"            -> ("^", "foo")
        "..foo"           -> ("..", "foo")
        ".hello.md::test" -> (".hello.md", "test")
        "hello"           -> ("", "hello")
    """
    if "::" in script_name:
        playbook, command = script_name.split("::", 1)
        return playbook, command
    if script_name.startswith(GLOBAL_PREFIX):
        return GLOBAL_PREFIX, script_name[1:]
    match = DOT_PREFIX_PATTERN.match(script_name)
    if match:
        prefix = match.group(1)
        return prefix, script_name[len(prefix):]
    return "", script_name


def parent_dir(dir_name: str) -> str:
    """Return the parent of an absolute directory, "" once past the root."""
    if not dir_name or dir_name == "/" or not dir_name.startswith("/"):
        return ""
    if len(dir_name) > 1 and dir_name.endswith("/"):
        dir_name = dir_name[:-1]
    return os.path.dirname(dir_name)


def check_prefix(prefix: str) -> None:
    """Validate a project prefix, which may only contain dots.

    Raises:
        InvalidNameError: on the first non-dot character
    """
    for ch in prefix:
        if ch != PROJECT_PREFIX:
            raise InvalidNameError(f"invalid prefix character '{ch}'")


class NameResolver:
    """Resolves playbook names to files.

    Grammar:
        -            standard input
        @...         reserved namespace (always an error)
        ^[name]      playbook in the global scripthaus home
        .[name]      playbook in the project root, each extra dot one root up
        name         literal file in the working directory, else same as .name
        ./ / ../     literal path
    """

    def __init__(
        self,
        environment: Optional[Environment] = None,
        probe: Optional[StatProbe] = None,
        strict_permissions: bool = False,
    ):
        """Initialize NameResolver.

        Args:
            environment: Variables and working directory (default: current process)
            probe: Filesystem probe (default: the real filesystem)
            strict_permissions: Fail instead of skipping directories that
                                cannot be probed while searching for a root
        """
        self.environment = environment or Environment.from_os()
        self.probe = probe or OsStatProbe()
        self.strict_permissions = strict_permissions

    def resolve(self, name: str) -> ResolvedPlaybook:
        """Resolve a playbook name.

        Args:
            name: Playbook name as typed by the user

        Returns:
            ResolvedPlaybook with an absolute resolved_file (or "-" for stdin)

        Raises:
            ResolveError: if the name is malformed or the file is missing
        """
        if name == STDIN_PLAYBOOK:
            return ResolvedPlaybook(orig_name=name, canonical_name=name, resolved_file=STDIN_PLAYBOOK)

        if name.startswith(NAMESPACE_PREFIX):
            raise NamespaceNotSupportedError(f"cannot resolve playbook '{name}', @-prefix not supported")

        match = PLAYBOOK_PREFIX_PATTERN.match(name)
        if match:
            prefix = match.group(1)
            target = name[len(prefix):]
            if prefix == GLOBAL_PREFIX:
                return self._resolve_global(name, target)
            if prefix == "" and target:
                literal = self._find_literal_file(target)
                if literal is not None:
                    return ResolvedPlaybook(orig_name=name, canonical_name=literal, resolved_file=literal)
            return self._resolve_in_project(name, prefix, target)

        if name.startswith(LITERAL_PATH_PREFIXES):
            return self._resolve_literal_path(name)

        if name.startswith(PROJECT_PREFIX):
            # near misses such as ".*foo"
            loose_prefix = LOOSE_PREFIX_PATTERN.match(name).group(0)
            try:
                check_prefix(loose_prefix)
            except InvalidNameError as e:
                raise InvalidNameError(f"cannot resolve directory for playbook '{name}': {e}") from e

        raise InvalidNameError(f"invalid playbook name '{name}'")

    def find_prefix_dir(self, prefix: str) -> str:
        """Find the directory a name prefix refers to.

        Args:
            prefix: "^", or a run of dots (empty means ".")

        Returns:
            Absolute directory path

        Raises:
            InvalidNameError: if the prefix contains anything but dots
            RootNotFoundError: if a project root is missing at some depth
        """
        if prefix == GLOBAL_PREFIX:
            # a relative home is taken from the working directory
            home_dir = self.environment.scripthaus_home()
            return os.path.normpath(os.path.join(self.environment.cwd, home_dir))
        if prefix == "":
            prefix = PROJECT_PREFIX
        check_prefix(prefix)

        cur_dir = self.environment.cwd
        for depth in range(len(prefix)):
            last_dir = cur_dir
            found = self.find_root_dir(cur_dir, allow_current=(depth == 0))
            if found is None:
                if depth == 0:
                    raise RootNotFoundError(
                        f"cannot find scripthaus root ({DEFAULT_PLAYBOOK_FILE} file) "
                        f"in any parent directory above '{last_dir}'",
                        path=last_dir,
                    )
                raise RootNotFoundError(
                    f"cannot find scripthaus root ({DEFAULT_PLAYBOOK_FILE} file) "
                    f"above '{last_dir}' (depth = {depth + 1})",
                    path=last_dir,
                )
            cur_dir = found
        return cur_dir

    def find_root_dir(self, cur_dir: str, allow_current: bool) -> Optional[str]:
        """Walk up from cur_dir to the nearest directory holding a marker file.

        Args:
            cur_dir: Absolute starting directory
            allow_current: Whether cur_dir itself may be the result

        Returns:
            The root directory, or None when the walk passes "/"
        """
        if not allow_current:
            cur_dir = parent_dir(cur_dir)
        while cur_dir:
            if self._has_marker(cur_dir):
                return cur_dir
            cur_dir = parent_dir(cur_dir)
        return None

    def resolve_playbook_in_dir(self, orig_name: str, dir_name: str, playbook_name: str) -> str:
        """Locate a playbook file inside a directory.

        An empty playbook_name, or one ending in "/", means the default
        playbook file. If the result is a directory the default file inside
        it is tried once.

        Args:
            orig_name: Name the user typed (for error messages)
            dir_name: Directory the playbook name is relative to
            playbook_name: Playbook path relative to dir_name

        Returns:
            Absolute path of the playbook file

        Raises:
            PlaybookNotFoundError, PlaybookPermissionError,
            PlaybookStatError, PlaybookIsDirectoryError
        """
        if not playbook_name:
            playbook_name = DEFAULT_PLAYBOOK_FILE
        elif playbook_name.endswith("/"):
            playbook_name = playbook_name + DEFAULT_PLAYBOOK_FILE
        full_path = os.path.normpath(os.path.join(self.environment.cwd, dir_name, playbook_name))
        display_name = orig_name or "<default>"

        try:
            info = self.probe.stat(full_path)
            if info.is_dir:
                full_path = os.path.join(full_path, DEFAULT_PLAYBOOK_FILE)
                info = self.probe.stat(full_path)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise PlaybookNotFoundError(
                f"playbook not found '{display_name}' (resolved to '{full_path}')",
                name=display_name,
                path=full_path,
            ) from e
        except PermissionError as e:
            raise PlaybookPermissionError(
                f"playbook '{display_name}' (resolved to '{full_path}'), permission error: {e}"
            ) from e
        except OSError as e:
            raise PlaybookStatError(
                f"playbook '{display_name}' (resolved to '{full_path}'), stat error: {e}"
            ) from e

        if info.is_dir:
            raise PlaybookIsDirectoryError(
                f"playbook '{display_name}' (resolved to '{full_path}'), is a directory not a file"
            )
        return full_path

    def _resolve_global(self, name: str, target: str) -> ResolvedPlaybook:
        try:
            home_dir = self.find_prefix_dir(GLOBAL_PREFIX)
        except HomeDirError as e:
            raise HomeDirError(f"cannot resolve directory for playbook '{name}': {e}") from e
        resolved = self.resolve_playbook_in_dir(name, home_dir, target)
        return ResolvedPlaybook(
            orig_name=name,
            canonical_name=self._canonical_name(GLOBAL_PREFIX, home_dir, resolved),
            resolved_file=resolved,
        )

    def _resolve_in_project(self, name: str, prefix: str, target: str) -> ResolvedPlaybook:
        try:
            project_dir = self.find_prefix_dir(prefix)
        except RootNotFoundError as e:
            raise RootNotFoundError(
                f"cannot resolve directory for playbook '{name}': {e}", name=name, path=e.path
            ) from e
        except InvalidNameError as e:
            raise InvalidNameError(f"cannot resolve directory for playbook '{name}': {e}") from e
        resolved = self.resolve_playbook_in_dir(name, project_dir, target)
        return ResolvedPlaybook(
            orig_name=name,
            canonical_name=self._canonical_name(PROJECT_PREFIX, project_dir, resolved),
            resolved_file=resolved,
            project_dir=project_dir,
        )

    def _resolve_literal_path(self, name: str) -> ResolvedPlaybook:
        last_slash = name.rfind("/")
        dir_name, base_name = name[:last_slash + 1], name[last_slash + 1:]
        resolved = self.resolve_playbook_in_dir(name, dir_name, base_name)
        return ResolvedPlaybook(orig_name=name, canonical_name=resolved, resolved_file=resolved)

    def _find_literal_file(self, target: str) -> Optional[str]:
        """Return the absolute path of target in the working directory if it is a file."""
        path = os.path.normpath(os.path.join(self.environment.cwd, target))
        try:
            info = self.probe.stat(path)
        except OSError as e:
            logger.debug("no literal playbook at %s: %s", path, e)
            return None
        if info.is_dir:
            return None
        logger.debug("using literal playbook file %s", path)
        return path

    def _has_marker(self, dir_name: str) -> bool:
        marker = os.path.join(dir_name, DEFAULT_PLAYBOOK_FILE)
        try:
            info: PathInfo = self.probe.stat(marker)
        except (FileNotFoundError, NotADirectoryError):
            return False
        except PermissionError as e:
            if self.strict_permissions:
                raise PlaybookPermissionError(
                    f"cannot access playbook file at '{marker}': {e}"
                ) from e
            logger.debug("skipping unreadable marker %s: %s", marker, e)
            return False
        except OSError as e:
            raise PlaybookStatError(f"cannot access playbook file at '{marker}': {e}") from e
        logger.debug("probed %s (is_dir=%s)", marker, info.is_dir)
        return not info.is_dir

    @staticmethod
    def _canonical_name(prefix: str, root_dir: str, resolved: str) -> str:
        rel_path = os.path.relpath(resolved, root_dir)
        if rel_path == DEFAULT_PLAYBOOK_FILE:
            return prefix
        return prefix + rel_path
