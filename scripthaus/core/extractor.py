"""Command extraction from playbook Markdown."""

import logging
import re
from typing import Dict, List, Optional, Tuple, Union

from markdown_it import MarkdownIt
from markdown_it.token import Token

from scripthaus.config import ALLOWED_LANGUAGES
from scripthaus.core.directives import COMMAND_DIRECTIVE, extract_directives, get_command_directive
from scripthaus.core.frontmatter import split_frontmatter
from scripthaus.core.models import CommandDef, ResolvedPlaybook
from scripthaus.errors import CommandNotFoundError, ExtractError

logger = logging.getLogger(__name__)

NO_BREAK = -1
LINE_END_PATTERN = re.compile(r'\r\n|\r|\n')


def parse_info(info: str) -> Tuple[str, Dict[str, str]]:
    """Split a fence info string into language and fields.

    "bash env=prod quiet" -> ("bash", {"env": "prod", "quiet": "1"})
    """
    words = info.split()
    if not words:
        return "", {}
    fields = {}
    for word in words[1:]:
        key, sep, value = word.partition("=")
        fields[key] = value if sep else "1"
    return words[0], fields


def _line_starts(lines: List[str]) -> List[int]:
    starts = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    return starts


def _byte_line_starts(raw: str) -> List[int]:
    """Byte offset of each line in the UTF-8 encoded, unnormalized source."""
    starts = [0]
    pos = 0
    for match in LINE_END_PATTERN.finditer(raw):
        starts.append(starts[-1] + len(raw[pos:match.end()].encode("utf-8")))
        pos = match.end()
    return starts


class CommandExtractor:
    """Extracts command definitions from the Markdown source of a playbook.

    A command is a fenced code block containing a '@scripthaus command'
    directive. Its help text is the most recent unclaimed run of Markdown
    above it:

    - thematic breaks and headings of level 1-3 end the run
    - a level 4 heading starts a new run
    - any other block starts a run when none is active
    - a command consumes the run, so the next command starts fresh

    Malformed blocks produce warnings and are skipped; they never stop the
    rest of the playbook from being extracted.
    """

    VALID_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_/-]*$')
    ANCHOR_HEADING_LEVEL = 4

    def __init__(self, allowed_languages=None, markdown: Optional[MarkdownIt] = None):
        """Initialize CommandExtractor.

        Args:
            allowed_languages: Fence languages accepted for commands
            markdown: Markdown parser (default: CommonMark with tables)
        """
        self.allowed_languages = frozenset(allowed_languages or ALLOWED_LANGUAGES)
        self.markdown = markdown or MarkdownIt("commonmark").enable("table")

    def extract(
        self, playbook: ResolvedPlaybook, source: Union[bytes, str]
    ) -> Tuple[List[CommandDef], List[str]]:
        """Extract all commands from a playbook.

        Args:
            playbook: The resolved playbook the source belongs to
            source: Raw playbook contents

        Returns:
            Tuple of (commands in document order, warnings)

        Raises:
            ExtractError: if the source is not UTF-8 text
        """
        raw = self._decode(playbook, source)
        # same line normalization the Markdown parser applies
        text = LINE_END_PATTERN.sub("\n", raw)
        lines = text.split("\n")
        line_starts = _line_starts(lines)
        byte_starts = _byte_line_starts(raw)
        _, body_start = split_frontmatter(lines)
        body = "\n".join(lines[body_start:])

        commands: List[CommandDef] = []
        warnings: List[str] = []
        defined_at: Dict[str, int] = {}
        break_index = NO_BREAK

        for token in self.markdown.parse(body):
            # only top-level blocks; closing tokens carry no new information
            if token.level != 0 or token.nesting < 0 or token.map is None:
                continue
            start_line = token.map[0] + body_start
            start_index = line_starts[start_line]

            if token.type == "hr":
                break_index = NO_BREAK
                continue

            if token.type == "heading_open":
                level = int(token.tag[1:])
                if level < self.ANCHOR_HEADING_LEVEL:
                    break_index = NO_BREAK
                    continue
                if level == self.ANCHOR_HEADING_LEVEL:
                    break_index = start_index
                    continue

            if token.type == "fence" and token.info.strip():
                line_no = start_line + 1
                directives = extract_directives(token.content)
                name, short_text = get_command_directive(directives)

                if not name:
                    if any(d.type == COMMAND_DIRECTIVE for d in directives):
                        warnings.append(f"code block has a 'command' directive with no name (line {line_no})")
                    elif directives:
                        warnings.append(
                            f"code block has scripthaus directives, but no 'command' directive (line {line_no})"
                        )
                    else:
                        logger.debug("skipping plain code block at line %d", line_no)
                    break_index = NO_BREAK
                    continue

                info_text = token.info.strip()
                lang, info = parse_info(info_text)
                if lang not in self.allowed_languages:
                    # keep break_index, a later block may still claim the help text
                    warnings.append(
                        f"command '{name}' has invalid language '{lang}' (info='{info_text}', line {line_no}), skipping"
                    )
                    continue

                if not self.VALID_NAME_PATTERN.match(name):
                    warnings.append(f"invalid command name '{name}' (line {line_no}), skipping")
                    break_index = NO_BREAK
                    continue

                if name in defined_at:
                    warnings.append(
                        f"duplicate command '{name}' (line {line_no}), "
                        f"already defined on line {defined_at[name]}, ignoring"
                    )
                    break_index = NO_BREAK
                    continue

                help_text = ""
                if break_index != NO_BREAK:
                    help_text = text[break_index:start_index].strip()

                commands.append(CommandDef(
                    playbook=playbook,
                    name=name,
                    lang=lang,
                    script_text=token.content,
                    raw_code_text=self._raw_code_text(token, lines, body_start),
                    help_text=help_text,
                    short_text=short_text,
                    info=info,
                    start_index=byte_starts[start_line],
                    start_line_no=line_no,
                    raw_directives=directives,
                ))
                defined_at[name] = line_no
                break_index = NO_BREAK
                continue

            if break_index == NO_BREAK:
                break_index = start_index

        return commands, warnings

    def _decode(self, playbook: ResolvedPlaybook, source: Union[bytes, str]) -> str:
        if isinstance(source, bytes):
            try:
                source = source.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ExtractError(f"playbook '{playbook.orig_name}' is not valid UTF-8: {e}") from e
        return source

    @staticmethod
    def _raw_code_text(token: Token, lines: List[str], body_start: int) -> str:
        """Full fence text: info line through the closing fence."""
        start, end = token.map
        return "\n".join(lines[start + body_start:end + body_start])


def extract_commands(
    playbook: ResolvedPlaybook, source: Union[bytes, str]
) -> Tuple[List[CommandDef], List[str]]:
    """Extract commands with the default extractor."""
    return CommandExtractor().extract(playbook, source)


def find_command(commands: List[CommandDef], name: str) -> CommandDef:
    """Look up a command by name.

    Raises:
        CommandNotFoundError: if no command has that name
    """
    for cmd in commands:
        if cmd.name == name:
            return cmd
    raise CommandNotFoundError(f"could not find command '{name}'")
