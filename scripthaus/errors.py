"""Typed exceptions for ScriptHaus."""

from typing import Optional


class ScripthausError(Exception):
    """Base exception for ScriptHaus failures."""


class ResolveError(ScripthausError):
    """Raised when a playbook name cannot be resolved to a file."""


class InvalidNameError(ResolveError):
    """Raised for names that do not follow the playbook/script grammar."""


class NamespaceNotSupportedError(InvalidNameError):
    """Raised for names in the reserved @-namespace."""


class PlaybookNotFoundError(ResolveError):
    """Raised when a playbook (or project root) does not exist.

    Carries both the name the user typed and the path it resolved to.
    """

    def __init__(self, message: str, name: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.name = name
        self.path = path


class RootNotFoundError(PlaybookNotFoundError):
    """Raised when no scripthaus.md marker is found walking up the tree."""


class PlaybookPermissionError(ResolveError):
    """Raised when the playbook exists but cannot be accessed."""


class PlaybookStatError(ResolveError):
    """Raised for any other failure while inspecting a playbook path."""


class PlaybookIsDirectoryError(ResolveError):
    """Raised when a resolved playbook path is a directory."""


class HomeDirError(ResolveError):
    """Raised when the global scripthaus home directory is unknown."""


class ExtractError(ScripthausError):
    """Raised when a playbook source cannot be read or decoded."""


class CommandNotFoundError(ScripthausError):
    """Raised when a named command does not exist in a playbook."""


class MissingEnvVarError(ScripthausError):
    """Raised when a command requires environment variables that are unset."""

    def __init__(self, message: str, missing: Optional[list] = None):
        super().__init__(message)
        self.missing = list(missing or [])
