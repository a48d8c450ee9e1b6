"""
Tree building and text assembly for flattened workspaces.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .core import FileCollector, FileEntry, FlattenConfig, Scope, resolve_root

SEPARATOR = "-" * 80
LINE_NUMBER_WIDTH = 2


@dataclass(frozen=True)
class FileNode:
    """Leaf marker; files have no children."""


@dataclass
class DirectoryNode:
    children: Dict[str, "TreeNode"] = field(default_factory=dict)


TreeNode = Union[DirectoryNode, FileNode]

FILE = FileNode()


# project-tree builder
def build_tree(paths: Iterable[str]) -> DirectoryNode:
    """Merge slash-separated *paths* into one nested :class:`DirectoryNode`.

    Empty segments are dropped, so ``/src/a.py`` and ``src/a.py`` are the
    same path. A name first seen as a file is never descended into.
    """
    root = DirectoryNode()
    for path in paths:
        segments = [s for s in path.split("/") if s]
        current = root
        for idx, segment in enumerate(segments):
            node = current.children.get(segment)
            if node is None:
                node = FILE if idx == len(segments) - 1 else DirectoryNode()
                current.children[segment] = node
            if isinstance(node, FileNode):
                break
            current = node
    return root


# project-tree renderer
def render_tree(node: DirectoryNode, indent: str = "") -> str:
    """Return *node* as ``tree``-style lines, each ending in a newline.

    Children are sorted by plain string comparison, files and directories
    interleaved. ``└── `` marks the last sibling, ``├── `` the others.
    """
    lines: List[str] = []

    def _walk(current: DirectoryNode, prefix: str) -> None:
        names = sorted(current.children)
        for idx, name in enumerate(names):
            last = idx == len(names) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{name}\n")
            child = current.children[name]
            if isinstance(child, DirectoryNode):
                _walk(child, prefix + ("    " if last else "│   "))

    _walk(node, indent)
    return "".join(lines)


def sort_entries(entries: Iterable[FileEntry]) -> List[FileEntry]:
    """Sort by path case-insensitively, lowercase first on ties.

    This approximates a locale collation for ASCII paths only: punctuation
    keeps code point order (``-`` before ``_``) and accented letters sort
    after ``z`` rather than beside their base letter.
    """
    return sorted(entries, key=lambda e: (e.path.casefold(), e.path.swapcase()))


def format_line(number: int, content: str) -> str:
    return f"{number:>{LINE_NUMBER_WIDTH}} | {content}"


def assemble(entries: Sequence[FileEntry]) -> str:
    """Render the directory tree followed by every file's numbered lines."""
    ordered = sort_entries(entries)
    parts: List[str] = [render_tree(build_tree(e.path for e in ordered)).strip(), "\n\n"]
    for entry in ordered:
        parts.append(f"{SEPARATOR}\n{entry.path}:\n{SEPARATOR}\n")
        parts.extend(format_line(line.number, line.content) + "\n" for line in entry.lines)
        parts.append("\n\n")
    return "".join(parts).strip()


def assemble_json(entries: Sequence[FileEntry]) -> str:
    payload = [
        {
            "path": entry.path,
            "lines": [
                {"lineNumber": line.number, "content": line.content}
                for line in entry.lines
            ],
        }
        for entry in sort_entries(entries)
    ]
    return json.dumps(payload, indent=2, ensure_ascii=False)


# Entry points
def flatten(
    root: os.PathLike | str,
    scope: Optional[Scope] = None,
    config: Optional[FlattenConfig] = None,
    as_json: bool = False,
) -> str:
    """Collect *scope* under *root* and return the flattened text."""
    entries = FileCollector(resolve_root(root), config).collect(scope)
    return assemble_json(entries) if as_json else assemble(entries)


def render_directory_tree(
    root: os.PathLike | str,
    config: Optional[FlattenConfig] = None,
) -> str:
    """Return just the tree of non-ignored files; nothing is read or size-checked."""
    collector = FileCollector(resolve_root(root), config)
    return render_tree(build_tree(collector.included_paths(Scope.workspace()))).strip()
