"""
CLI entrypoint for flatten_workspace.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import pyperclip

from . import __version__
from .core import (
    DEFAULT_MAX_FILE_SIZE_KB,
    ClipboardError,
    FileCollector,
    FlattenConfig,
    FlattenError,
    OutputError,
    Scope,
    load_extra_patterns,
    resolve_root,
)
from .log import configure_logging, get_logger
from .tree import assemble, assemble_json, render_directory_tree

log = get_logger("cli")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="flatten-workspace",
        description="Copy a directory tree plus numbered file contents to the clipboard.",
    )
    p.add_argument("--root", type=Path, default=Path("."), help="Workspace root dir")
    p.add_argument(
        "--scope",
        type=Path,
        help="Directory or file to flatten, relative to --root (default: everything)",
    )
    p.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Gitignore-style pattern to exclude (repeatable)",
    )
    p.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra ignore patterns (one per line)",
    )
    p.add_argument(
        "--use-gitignore",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Also apply the root .gitignore (default: on)",
    )
    p.add_argument(
        "--max-size-kb",
        type=int,
        default=DEFAULT_MAX_FILE_SIZE_KB,
        help=f"Skip files larger than this many KB (default {DEFAULT_MAX_FILE_SIZE_KB})",
    )
    p.add_argument(
        "--tree-only",
        action="store_true",
        help="Copy only the directory structure",
    )
    p.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    dest = p.add_mutually_exclusive_group()
    dest.add_argument("--out", type=Path, help="Write to this file instead of the clipboard")
    dest.add_argument("--stdout", action="store_true", help="Print instead of copying")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ns = p.parse_args(argv)
    if ns.tree_only and ns.scope is not None:
        p.error("--scope cannot be combined with --tree-only")
    return ns


def build_config(ns: argparse.Namespace) -> FlattenConfig:
    patterns = list(ns.ignore)
    if ns.config:
        patterns.extend(load_extra_patterns(ns.config.resolve()))
        log.debug("Loaded extra patterns from %s", ns.config)
    return FlattenConfig(
        ignore_patterns=patterns,
        use_gitignore=ns.use_gitignore,
        max_file_size_kb=ns.max_size_kb,
    )


def copy_to_clipboard(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Could not copy to clipboard: {e}")


def write_output(text: str, out_path: Path) -> None:
    try:
        out_path = out_path.resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8", newline="\n") as out_fh:
            out_fh.write(text)
    except (OSError, RuntimeError) as e:
        raise OutputError(f"Could not write '{out_path}': {e}")


def run(ns: argparse.Namespace) -> str:
    """Build the output for *ns* and deliver it; returns the text."""
    root = resolve_root(ns.root)
    config = build_config(ns)

    if ns.tree_only:
        text = render_directory_tree(root, config)
        what = "Directory structure"
    else:
        collector = FileCollector(root, config)
        log.debug("Scanning %s ...", root)
        entries = collector.collect(Scope.from_path(ns.scope, root))
        text = assemble_json(entries) if ns.format == "json" else assemble(entries)
        what = f"{len(entries)} files"
        if not entries:
            log.warning("Nothing to copy: every file was ignored, too large or unreadable")

    if ns.stdout:
        print(text)
    elif ns.out:
        write_output(text, ns.out)
        log.info("%s (%d chars) written to %s", what, len(text), ns.out, extra={"success": True})
    else:
        copy_to_clipboard(text)
        log.info("%s (%d chars) copied to clipboard", what, len(text), extra={"success": True})
    return text


def main(argv: Optional[List[str]] = None) -> None:
    try:
        ns = _parse_args(argv)
        configure_logging(verbose=ns.verbose)
        run(ns)
    except FlattenError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        log.debug("Unexpected failure", exc_info=True)
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
