"""Parsing of script names given on the command line."""

import re
from typing import Optional

from scripthaus.config import STDIN_PLAYBOOK
from scripthaus.core.extractor import CommandExtractor
from scripthaus.core.models import (
    LiteralPathReference,
    PlaybookScriptReference,
    ScriptReference,
    StdinReference,
)
from scripthaus.core.resolver import LITERAL_PATH_PREFIXES, split_script_name
from scripthaus.errors import InvalidNameError

RUN_TYPE_PLAYBOOK = "playbook"
RUN_TYPE_SCRIPT = "script"
SCRIPT_SUFFIXES = (".py", ".js", ".sh")
PLAYBOOK_SUFFIX = ".md"

# names that only select a playbook: "^", ".", "..", ...
BARE_PREFIX_PATTERN = re.compile(r'^(\^|\.+)$')


def script_run_type(script_name: str) -> str:
    """Classify a script name as a playbook command or a standalone script."""
    if "::" in script_name:
        return RUN_TYPE_PLAYBOOK
    if script_name.endswith(SCRIPT_SUFFIXES):
        return RUN_TYPE_SCRIPT
    return RUN_TYPE_PLAYBOOK


def _check_command_name(command: str, script_name: str) -> None:
    if not CommandExtractor.VALID_NAME_PATTERN.match(command):
        raise InvalidNameError(f"invalid characters in playbook command name '{command}' ('{script_name}')")


def parse_script_reference(
    script_name: str,
    playbook: Optional[str] = None,
    allow_bare_playbook: bool = False,
) -> ScriptReference:
    """Work out what a script name on the command line refers to.

    Args:
        script_name: Name as typed ("^build", "x.md::test", "./run.sh", "-")
        playbook: Playbook given separately (--playbook); script_name is then
                  a plain command name
        allow_bare_playbook: Accept names that select only a playbook

    Returns:
        StdinReference, LiteralPathReference or PlaybookScriptReference

    Raises:
        InvalidNameError: if the name is malformed
    """
    if playbook is not None:
        if "/" in script_name or "::" in script_name:
            raise InvalidNameError(
                f"invalid script '{script_name}', only a command name is allowed when --playbook '{playbook}' is given"
            )
        _check_command_name(script_name, script_name)
        return PlaybookScriptReference(playbook=playbook, command=script_name)

    if script_name == STDIN_PLAYBOOK:
        if not allow_bare_playbook:
            raise InvalidNameError(f"invalid script '{script_name}', no command given for playbook from <stdin>")
        return StdinReference()

    if script_name.endswith("/"):
        raise InvalidNameError(f"invalid script '{script_name}', cannot have a trailing slash")

    if "::" in script_name:
        playbook_name, command = split_script_name(script_name)
        if not command:
            if allow_bare_playbook:
                return PlaybookScriptReference(playbook=playbook_name)
            raise InvalidNameError(f"no playbook command specified in '{script_name}'")
        _check_command_name(command, script_name)
        return PlaybookScriptReference(playbook=playbook_name, command=command)

    if script_name.endswith(PLAYBOOK_SUFFIX) or BARE_PREFIX_PATTERN.match(script_name):
        if allow_bare_playbook:
            return PlaybookScriptReference(playbook=script_name)
        raise InvalidNameError(
            f"no playbook command specified, usage: {script_name}::[command]"
        )

    if script_run_type(script_name) == RUN_TYPE_SCRIPT or script_name.startswith(LITERAL_PATH_PREFIXES):
        return LiteralPathReference(path=script_name)

    playbook_name, command = split_script_name(script_name)
    _check_command_name(command, script_name)
    return PlaybookScriptReference(playbook=playbook_name, command=command)
