"""Filesystem probes used by the name resolver.

The resolver never calls os.stat directly. It asks a StatProbe, which either
looks at the real filesystem (OsStatProbe) or at a fixed set of paths
(FakeStatProbe, for tests and dry runs).

A probe follows os.stat's error contract: FileNotFoundError when the path is
absent, PermissionError when it cannot be inspected, any other OSError for
everything else.
"""

import errno
import os
import stat
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol, Set


@dataclass(frozen=True)
class PathInfo:
    """What the resolver needs to know about an existing path."""
    path: str
    is_dir: bool


class StatProbe(Protocol):
    """Capability for inspecting a filesystem path."""

    def stat(self, path: str) -> PathInfo:
        ...


class OsStatProbe:
    """StatProbe backed by the real filesystem."""

    def stat(self, path: str) -> PathInfo:
        st = os.stat(path)
        return PathInfo(path=path, is_dir=stat.S_ISDIR(st.st_mode))


class FakeStatProbe:
    """StatProbe backed by an in-memory set of paths.

    Parent directories of every file are implied. A path listed in `denied`
    raises PermissionError, and so does everything beneath it (like a
    directory without search permission).
    """

    def __init__(
        self,
        files: Iterable[str] = (),
        dirs: Iterable[str] = (),
        denied: Iterable[str] = (),
        errors: Optional[Dict[str, OSError]] = None,
    ):
        """Initialize FakeStatProbe.

        Args:
            files: Absolute paths of regular files
            dirs: Absolute paths of directories (parents of files are added)
            denied: Paths that raise PermissionError when probed
            errors: Paths mapped to the OSError they raise
        """
        self.files: Set[str] = {self._norm(f) for f in files}
        self.dirs: Set[str] = {self._norm(d) for d in dirs}
        for path in list(self.files) + list(self.dirs):
            self.dirs.update(self._ancestors(path))
        self.denied: Set[str] = {self._norm(d) for d in denied}
        self.errors: Dict[str, OSError] = {
            self._norm(k): v for k, v in (errors or {}).items()
        }
        self.probed: list = []

    def stat(self, path: str) -> PathInfo:
        norm = self._norm(path)
        self.probed.append(norm)
        if norm in self.errors:
            raise self.errors[norm]
        if norm in self.denied or self.denied.intersection(self._ancestors(norm)):
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)
        if norm in self.files:
            return PathInfo(path=path, is_dir=False)
        if norm in self.dirs:
            return PathInfo(path=path, is_dir=True)
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)

    @staticmethod
    def _norm(path: str) -> str:
        return os.path.normpath(path)

    @staticmethod
    def _ancestors(path: str) -> Set[str]:
        result = set()
        parent = os.path.dirname(path)
        while parent and parent not in result:
            result.add(parent)
            if parent == os.path.dirname(parent):
                break
            parent = os.path.dirname(parent)
        return result
