"""Command line interface for ScriptHaus."""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from scripthaus.config import VERSION, Environment
from scripthaus.core.directives import process_directives
from scripthaus.core.extractor import CommandExtractor, find_command
from scripthaus.core.frontmatter import parse_frontmatter
from scripthaus.core.models import (
    CommandDef,
    LiteralPathReference,
    ResolvedPlaybook,
    StdinReference,
)
from scripthaus.core.references import parse_script_reference
from scripthaus.core.resolver import NameResolver
from scripthaus.errors import CommandNotFoundError, ExtractError, InvalidNameError, ScripthausError

MESSAGE_PREFIX = "[^scripthaus]"
LOG_FORMAT = MESSAGE_PREFIX + " %(levelname)s %(name)s: %(message)s"


def main(argv: Optional[List[str]] = None, environment: Optional[Environment] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    handler = _configure_logging(args.verbose, args.quiet)
    try:
        resolver = NameResolver(environment=environment or Environment.from_os())
        return args.handler(args, resolver)
    except ScripthausError as exc:
        print(f"{MESSAGE_PREFIX} ERROR {exc}", file=sys.stderr)
        return 1
    finally:
        logging.getLogger("scripthaus").removeHandler(handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scripthaus",
        description="Inspect commands stored in Markdown playbooks.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Show debug output.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress warnings.")
    parser.add_argument(
        "-p",
        "--playbook",
        help="Playbook to use; script names are then plain command names.",
    )

    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list", help="List the commands in a playbook.")
    list_parser.add_argument(
        "playbook_name",
        nargs="?",
        help="Playbook name (^, ., file.md, ./path.md, -). Defaults to the project playbook.",
    )
    list_parser.set_defaults(handler=_run_list)

    show_parser = subparsers.add_parser("show", help="Show the help text and code of a command.")
    show_parser.add_argument("script", nargs="?", help="Script name (^cmd, .cmd, file.md::cmd).")
    show_parser.set_defaults(handler=_run_show)

    resolve_parser = subparsers.add_parser("resolve", help="Print where a playbook name resolves to.")
    resolve_parser.add_argument("playbook_name", nargs="?", default="", help="Playbook name.")
    resolve_parser.set_defaults(handler=_run_resolve)

    version_parser = subparsers.add_parser("version", help="Print the version.")
    version_parser.set_defaults(handler=_run_version)

    return parser


def _configure_logging(verbose: int, quiet: bool) -> logging.Handler:
    logger = logging.getLogger("scripthaus")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)
    return handler


def _load_playbook(
    resolver: NameResolver, name: str
) -> Tuple[ResolvedPlaybook, str, List[CommandDef], List[str]]:
    playbook = resolver.resolve(name)
    try:
        source = playbook.read_bytes()
    except OSError as e:
        raise ExtractError(f"cannot read playbook '{playbook.resolved_file}': {e}") from e
    commands, warnings = CommandExtractor().extract(playbook, source)
    text = source.decode("utf-8")
    return playbook, text, commands, warnings


def _print_warnings(args: argparse.Namespace, warnings: List[str]) -> None:
    if args.quiet or not warnings:
        return
    for warning in warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    print(file=sys.stderr)


def _list_playbook(args: argparse.Namespace, resolver: NameResolver, name: str) -> int:
    playbook, text, commands, warnings = _load_playbook(resolver, name)
    _print_warnings(args, warnings)

    frontmatter = parse_frontmatter(text)
    print(playbook.resolved_file)
    if frontmatter.get("title"):
        print(f"  {frontmatter['title']}")
    if frontmatter.get("description"):
        print(f"  {frontmatter['description']}")

    width = max((len(cmd.orig_script_name()) for cmd in commands), default=0)
    for cmd in commands:
        if cmd.short_text:
            print(f"  {cmd.orig_script_name():<{width}}  - {cmd.short_text}")
        else:
            print(f"  {cmd.orig_script_name()}")
    return 0


def _run_list(args: argparse.Namespace, resolver: NameResolver) -> int:
    name = args.playbook_name
    if name is None:
        name = args.playbook or ""
    return _list_playbook(args, resolver, name)


def _run_show(args: argparse.Namespace, resolver: NameResolver) -> int:
    if args.script is None:
        if args.playbook is None:
            raise InvalidNameError("usage: scripthaus show [playbook::command], no script specified")
        return _list_playbook(args, resolver, args.playbook)

    ref = parse_script_reference(args.script, playbook=args.playbook, allow_bare_playbook=True)
    if isinstance(ref, StdinReference):
        return _list_playbook(args, resolver, "-")
    if isinstance(ref, LiteralPathReference):
        raise InvalidNameError(f"'{ref.path}' is a standalone script, not a playbook command")
    if ref.command is None:
        return _list_playbook(args, resolver, ref.playbook)

    playbook, _, commands, warnings = _load_playbook(resolver, ref.playbook)
    try:
        cmd = find_command(commands, ref.command)
    except CommandNotFoundError as e:
        _print_warnings(args, warnings)
        raise CommandNotFoundError(f"{e} inside of playbook '{playbook.resolved_file}'") from e

    process_directives(cmd)
    _print_warnings(args, warnings + cmd.warnings)
    print(f"{MESSAGE_PREFIX} show '{cmd.orig_script_name()}'")
    print()
    if cmd.help_text:
        print(cmd.help_text)
        print()
    print(cmd.raw_code_text)
    print()
    return 0


def _run_resolve(args: argparse.Namespace, resolver: NameResolver) -> int:
    playbook = resolver.resolve(args.playbook_name)
    print(f"name:      {playbook.orig_name}")
    print(f"canonical: {playbook.canonical_name}")
    print(f"file:      {playbook.resolved_file}")
    if playbook.project_dir:
        print(f"project:   {playbook.project_dir}")
    return 0


def _run_version(args: argparse.Namespace, resolver: NameResolver) -> int:
    print(f"{MESSAGE_PREFIX} v{VERSION}")
    return 0
