"""Data models for ScriptHaus playbooks and commands."""

import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from scripthaus.config import STDIN_PLAYBOOK

# playbook names written directly in front of a command ("^build", "..build")
PREFIX_ONLY_PATTERN = re.compile(r'^(\^|\.*)$')


@dataclass(frozen=True)
class ResolvedPlaybook:
    """Result of resolving a user-typed playbook name.

    Reading the file is left to the caller (see read_bytes), so resolving
    never touches file contents.
    """
    orig_name: str
    canonical_name: str
    resolved_file: str
    project_dir: Optional[str] = None
    project_name: Optional[str] = None

    @property
    def is_stdin(self) -> bool:
        return self.resolved_file == STDIN_PLAYBOOK

    @property
    def playbook_dir(self) -> Optional[str]:
        """Directory containing the playbook, None for stdin."""
        if self.is_stdin:
            return None
        return os.path.dirname(self.resolved_file)

    def read_bytes(self) -> bytes:
        """Read the playbook source (standard input for the '-' sentinel)."""
        if self.is_stdin:
            return sys.stdin.buffer.read()
        return Path(self.resolved_file).read_bytes()


@dataclass(frozen=True)
class RawDirective:
    """A single '@scripthaus <type> <data>' line found in a code fence.

    line_no is 1-indexed relative to the scanned text.
    """
    type: str
    data: str
    line_no: int


@dataclass
class CommandDef:
    """One runnable command extracted from a playbook.

    The execution constraints (require_env_vars, change_dir, no_log) are
    empty until process_directives() has run on the command.
    """
    playbook: ResolvedPlaybook
    name: str
    lang: str
    script_text: str
    raw_code_text: str = ""
    help_text: str = ""
    short_text: str = ""
    info: Dict[str, str] = field(default_factory=dict)
    start_index: int = 0  # byte offset of the opening fence in the source
    start_line_no: int = 0
    raw_directives: List[RawDirective] = field(default_factory=list)

    # derived from raw_directives
    directives_processed: bool = False
    require_env_vars: List[str] = field(default_factory=list)
    change_dir: Optional[str] = None
    no_log: bool = False
    warnings: List[str] = field(default_factory=list)

    def orig_script_name(self) -> str:
        """Name of this command the way the user addressed its playbook."""
        orig = self.playbook.orig_name
        if PREFIX_ONLY_PATTERN.match(orig):
            return f"{orig}{self.name}"
        return f"{orig}::{self.name}"

    def full_script_name(self) -> str:
        """Canonical name of this command, stable across working directories."""
        canonical = self.playbook.canonical_name
        if PREFIX_ONLY_PATTERN.match(canonical):
            return f"{canonical}{self.name}"
        return f"{canonical}::{self.name}"


@dataclass(frozen=True)
class StdinReference:
    """The playbook itself is read from standard input."""


@dataclass(frozen=True)
class LiteralPathReference:
    """A standalone script file addressed by path."""
    path: str


@dataclass(frozen=True)
class PlaybookScriptReference:
    """A command inside a playbook.

    command is None when only the playbook was named (e.g. for listing).
    """
    playbook: str
    command: Optional[str] = None


ScriptReference = Union[StdinReference, LiteralPathReference, PlaybookScriptReference]
