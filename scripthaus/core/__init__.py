"""Core components for ScriptHaus."""

from scripthaus.core.models import (
    CommandDef,
    LiteralPathReference,
    PlaybookScriptReference,
    RawDirective,
    ResolvedPlaybook,
    ScriptReference,
    StdinReference,
)
from scripthaus.core.probe import FakeStatProbe, OsStatProbe, PathInfo, StatProbe
from scripthaus.core.resolver import NameResolver, split_script_name
from scripthaus.core.directives import check_command, extract_directives, get_command_directive, process_directives
from scripthaus.core.extractor import CommandExtractor, extract_commands, find_command
from scripthaus.core.references import parse_script_reference, script_run_type

__all__ = [
    "CommandDef",
    "LiteralPathReference",
    "PlaybookScriptReference",
    "RawDirective",
    "ResolvedPlaybook",
    "ScriptReference",
    "StdinReference",
    "FakeStatProbe",
    "OsStatProbe",
    "PathInfo",
    "StatProbe",
    "NameResolver",
    "split_script_name",
    "check_command",
    "extract_directives",
    "get_command_directive",
    "process_directives",
    "CommandExtractor",
    "extract_commands",
    "find_command",
    "parse_script_reference",
    "script_run_type",
]
