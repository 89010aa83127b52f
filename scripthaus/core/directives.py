"""Scanning and interpreting @scripthaus directive comments.

Directives are comment lines inside a code fence:

    # @scripthaus command build - compile everything
    # @scripthaus require API_TOKEN
    # @scripthaus cd :playbook
    # @scripthaus nolog

Lines that do not match are ignored. Problems with a directive become
warnings on the command, never errors.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from scripthaus.core.models import CommandDef, RawDirective
from scripthaus.errors import MissingEnvVarError

logger = logging.getLogger(__name__)

DIRECTIVE_PATTERN = re.compile(r'^\s*(?:#|//)\s*@scripthaus\s+(\S+)(?:\s+(.*?))?\s*$')
ENV_VAR_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

COMMAND_DIRECTIVE = "command"
REQUIRE_DIRECTIVE = "require"
CD_DIRECTIVE = "cd"
NOLOG_DIRECTIVE = "nolog"

CD_PLAYBOOK = ":playbook"
CD_CURRENT = ":current"
SHORT_TEXT_MARKER = "- "


def extract_directives(text: str) -> List[RawDirective]:
    """Find all directive lines in a block of text.

    Args:
        text: Code fence contents

    Returns:
        Directives in order, line numbers 1-indexed within text
    """
    directives = []
    for line_no, line in enumerate(text.split("\n"), start=1):
        match = DIRECTIVE_PATTERN.match(line)
        if match:
            directives.append(RawDirective(type=match.group(1), data=match.group(2) or "", line_no=line_no))
    return directives


def get_command_directive(directives: List[RawDirective]) -> Tuple[str, str]:
    """Pick the command name and short description out of a directive list.

    Returns:
        (name, short_text); ("", "") when there is no command directive
    """
    for directive in directives:
        if directive.type != COMMAND_DIRECTIVE:
            continue
        name, _, rest = directive.data.strip().partition(" ")
        rest = rest.strip()
        short_text = ""
        if rest.startswith(SHORT_TEXT_MARKER):
            short_text = rest[len(SHORT_TEXT_MARKER):].strip()
        return name, short_text
    return "", ""


def process_directives(cmd: CommandDef, user_home: Optional[str] = None) -> None:
    """Apply a command's directives to its execution settings.

    Runs at most once per command; later calls return immediately.

    Args:
        cmd: Command to update in place
        user_home: Home directory used to expand "~" (default: the OS user's)
    """
    if cmd.directives_processed:
        return
    cmd.directives_processed = True

    for directive in cmd.raw_directives:
        if directive.type == COMMAND_DIRECTIVE:
            continue
        if directive.type == REQUIRE_DIRECTIVE:
            _apply_require(cmd, directive)
        elif directive.type == CD_DIRECTIVE:
            _apply_cd(cmd, directive, user_home)
        elif directive.type == NOLOG_DIRECTIVE:
            cmd.no_log = True
        else:
            cmd.warnings.append(
                f"invalid directive '{directive.type}' in command '{cmd.name}' (line {directive.line_no}), ignoring"
            )
    logger.debug(
        "processed directives for %s: require=%s cd=%s nolog=%s",
        cmd.name, cmd.require_env_vars, cmd.change_dir, cmd.no_log,
    )


def check_command(cmd: CommandDef, variables: Mapping[str, str]) -> None:
    """Make sure a command can run with the given environment variables.

    Raises:
        MissingEnvVarError: if any required variable is missing
    """
    process_directives(cmd)
    missing = [var for var in cmd.require_env_vars if var not in variables]
    if missing:
        raise MissingEnvVarError(
            f"command '{cmd.name}' requires environment variable(s) not set: {', '.join(missing)}",
            missing=missing,
        )


def _apply_require(cmd: CommandDef, directive: RawDirective) -> None:
    var_name = directive.data.strip()
    if not ENV_VAR_PATTERN.match(var_name):
        cmd.warnings.append(
            f"invalid environment variable name '{var_name}' in 'require' directive (line {directive.line_no}), ignoring"
        )
        return
    if var_name not in cmd.require_env_vars:
        cmd.require_env_vars.append(var_name)


def _apply_cd(cmd: CommandDef, directive: RawDirective, user_home: Optional[str]) -> None:
    dir_name = directive.data.strip()
    if dir_name == CD_PLAYBOOK:
        playbook_dir = cmd.playbook.playbook_dir
        if playbook_dir is None:
            cmd.warnings.append(
                f"'cd {CD_PLAYBOOK}' used in a playbook read from <stdin> (line {directive.line_no}), ignoring"
            )
            return
        cmd.change_dir = playbook_dir
        return
    if dir_name == CD_CURRENT:
        cmd.change_dir = None
        return
    if dir_name.startswith("~"):
        home = user_home or str(Path.home())
        cmd.change_dir = os.path.normpath(os.path.join(home, dir_name[1:].lstrip("/")))
        return
    if not os.path.isabs(dir_name):
        cmd.warnings.append(
            f"'cd' directive must be absolute, got '{dir_name}' (line {directive.line_no}), ignoring"
        )
        return
    cmd.change_dir = dir_name
