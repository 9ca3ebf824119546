"""Command-line interface for Auto Linker."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import Config, load_config
from .engine import LinkEngine
from .models import EntryKind, IndexEntry
from .vault import MarkdownVault
from .watcher import watch


def _notice(message: str) -> None:
    print(message, file=sys.stderr)


def _format_entry(entry: IndexEntry) -> str:
    kind = "Tag" if entry.kind is EntryKind.TAG else entry.kind.value
    return f"  {entry.display_text}  ({kind} in {entry.source_title})"


def _resolve_config(args: argparse.Namespace) -> Config:
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        # --vault alone is enough when no config file was asked for
        if args.vault is None or args.config is not None:
            print(f"Error: {e}", file=sys.stderr)
            raise SystemExit(1) from None
        config = Config(vault_path=args.vault)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1) from None

    if args.vault is not None:
        config.vault_path = args.vault.expanduser()
    if args.trigger_key is not None:
        config.trigger_key = args.trigger_key
    return config


def _cursor(args: argparse.Namespace) -> int:
    return len(args.line) if args.cursor is None else args.cursor


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="autolinker",
        description="Link phrases in your notes to existing notes, headings, blocks and tags",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to config YAML (default: ~/.config/autolinker/config.yaml)",
    )
    parser.add_argument(
        "--vault",
        type=Path,
        default=None,
        help="Vault directory (overrides vault_path from the config)",
    )
    parser.add_argument(
        "--trigger-key",
        default=None,
        help="Only suggest right after this text is typed (empty = always)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("suggest", "Show the longest linkable phrase at the cursor and its matches"),
        ("link", "Convert the phrase at the cursor into a link and print the new line"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("line", help="Line of text")
        cmd.add_argument(
            "--cursor",
            type=int,
            default=None,
            help="Cursor offset in the line (default: end of line)",
        )
    lookup = sub.add_parser("lookup", help="List index matches for a query")
    lookup.add_argument("query")
    sub.add_parser("watch", help="Keep an index of the vault up to date (daemon)")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = _resolve_config(args)
    vault = MarkdownVault(config.vault_path)

    if args.command == "watch":
        engine = LinkEngine.from_config(config, vault)
        watch(engine, vault)
        return

    engine = LinkEngine.from_config(config, vault, notify=_notice)
    if not engine.start(block=True):
        raise SystemExit(1)

    if args.command == "lookup":
        matches = engine.lookup(args.query)
        if not matches:
            print("No matches")
        for entry in matches:
            print(_format_entry(entry))

    elif args.command == "suggest":
        suggestion = engine.request_suggestion(args.line, _cursor(args))
        if suggestion is None:
            print("No suggestion")
            return
        print(f"{suggestion.span_start}-{suggestion.span_end}: {suggestion.query}")
        for entry in suggestion.matches:
            print(_format_entry(entry))

    elif args.command == "link":
        replacement = engine.request_immediate_link(args.line, _cursor(args))
        if replacement is None:
            raise SystemExit(1)
        print(replacement.apply(args.line))
