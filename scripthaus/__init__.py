"""
ScriptHaus - Run script snippets stored in Markdown playbooks

Commands live in fenced code blocks tagged with '@scripthaus' directive
comments and are addressed by short names:
- ^name for the global playbook
- .name for the nearest project playbook
- file.md::name for any other playbook
"""

from scripthaus.config import VERSION, Environment
from scripthaus.core.models import CommandDef, RawDirective, ResolvedPlaybook
from scripthaus.core.resolver import NameResolver
from scripthaus.core.extractor import CommandExtractor, extract_commands
from scripthaus.core.directives import process_directives
from scripthaus.errors import ScripthausError

__version__ = VERSION

__all__ = [
    "Environment",
    "CommandDef",
    "RawDirective",
    "ResolvedPlaybook",
    "NameResolver",
    "CommandExtractor",
    "extract_commands",
    "process_directives",
    "ScripthausError",
]
