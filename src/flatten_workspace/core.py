"""
Core logic for flatten_workspace: filtering, collecting and annotating files.
"""

from __future__ import annotations

import enum
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import pathspec

from .log import get_logger

log = get_logger("core")

# Exceptions
class FlattenError(Exception): ...
class NoWorkspaceError(FlattenError): ...
class NoResourceSelectedError(FlattenError): ...
class ConfigFileError(FlattenError): ...
class ClipboardError(FlattenError): ...
class OutputError(FlattenError): ...

# Defaults & helpers
DEFAULT_MAX_FILE_SIZE_KB = 1024

# Never enumerated, regardless of ignore rules.
_EXCLUDED_DIRS = {".git", ".svn", ".hg", "CVS"}
_EXCLUDED_FILES = {".DS_Store", "Thumbs.db"}


@dataclass
class FlattenConfig:
    """Settings for a single invocation."""

    ignore_patterns: List[str] = field(default_factory=list)
    use_gitignore: bool = True
    max_file_size_kb: int = DEFAULT_MAX_FILE_SIZE_KB

    @property
    def size_limit_kb(self) -> int:
        if not self.max_file_size_kb or self.max_file_size_kb <= 0:
            return DEFAULT_MAX_FILE_SIZE_KB
        return self.max_file_size_kb


@dataclass(frozen=True)
class Line:
    number: int
    content: str


@dataclass(frozen=True)
class FileEntry:
    """A collected file: root-relative ``path`` (leading ``/``) and its lines."""

    path: str
    lines: Tuple[Line, ...]

    @property
    def text(self) -> str:
        return "\n".join(line.content for line in self.lines)


class ScopeKind(enum.Enum):
    WORKSPACE = "workspace"
    SUBTREE = "subtree"
    FILE = "file"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    target: Optional[Path] = None

    @classmethod
    def workspace(cls) -> "Scope":
        return cls(ScopeKind.WORKSPACE)

    @classmethod
    def subtree(cls, path: os.PathLike | str) -> "Scope":
        return cls(ScopeKind.SUBTREE, Path(path))

    @classmethod
    def file(cls, path: os.PathLike | str) -> "Scope":
        return cls(ScopeKind.FILE, Path(path))

    @classmethod
    def from_path(cls, path: Optional[os.PathLike | str], root: Path) -> "Scope":
        """Pick a scope kind from what *path* points at (``None`` means everything)."""
        if path is None:
            return cls.workspace()
        target = _resolve_under(root, Path(path))
        if target.is_dir():
            return cls.subtree(target)
        if target.is_file():
            return cls.file(target)
        raise NoResourceSelectedError(f"'{path}' does not exist")


def _resolve_under(root: Path, target: Path) -> Path:
    if not target.is_absolute():
        target = root / target
    try:
        return target.resolve()
    except (OSError, RuntimeError) as e:
        raise NoResourceSelectedError(f"Could not resolve '{target}': {e}")


def resolve_root(root: Optional[os.PathLike | str]) -> Path:
    if root is None or str(root) == "":
        raise NoWorkspaceError("No workspace root given")
    try:
        path = Path(root).expanduser().resolve()
    except (OSError, RuntimeError) as e:
        raise NoWorkspaceError(f"Could not resolve root path '{root}': {e}")
    if not path.exists():
        raise NoWorkspaceError(f"Root directory '{path}' does not exist")
    if not path.is_dir():
        raise NoWorkspaceError(f"Root path '{path}' is not a directory")
    return path


# Ignore-file utilities
def read_gitignore(root: Path) -> List[str]:
    """Return the raw lines of ``root/.gitignore``; unreadable counts as absent."""
    gitignore_path = root / ".gitignore"
    if not gitignore_path.is_file():
        return []
    try:
        with gitignore_path.open("r", encoding="utf-8") as fh:
            return fh.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Ignoring unreadable .gitignore: %s", e)
        return []


def load_extra_patterns(config_path: Path) -> List[str]:
    """Read newline-separated ignore patterns from *config_path*."""
    if not config_path.exists():
        raise ConfigFileError(f"Config file '{config_path}' does not exist")
    if not config_path.is_file():
        raise ConfigFileError(f"'{config_path}' is not a file")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            return [
                ln.strip()
                for ln in fh
                if ln.strip() and not ln.lstrip().startswith("#")
            ]
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Could not read config file '{config_path}': {e}")


class PathFilter:
    """Answers whether a root-relative path is excluded.

    Patterns are evaluated in order with gitignore semantics, so a later
    ``!pattern`` re-includes what an earlier pattern excluded.
    """

    def __init__(self, patterns: Sequence[str] = ()) -> None:
        self.patterns: List[str] = list(patterns)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    @classmethod
    def for_root(cls, root: Path, config: FlattenConfig) -> "PathFilter":
        patterns = list(config.ignore_patterns)
        if config.use_gitignore:
            patterns.extend(read_gitignore(root))
        return cls(patterns)

    def is_dir_excluded(self, relative_dir: str) -> bool:
        rel = relative_dir.replace(os.sep, "/").strip("/")
        if not rel:
            return False
        return self._spec.match_file(rel + "/")

    def is_excluded(self, relative_path: str) -> bool:
        """A path inside an excluded directory stays excluded, as in git."""
        rel = relative_path.replace(os.sep, "/").lstrip("/")
        if not rel:
            return False
        parts = rel.split("/")
        for depth in range(1, len(parts)):
            if self.is_dir_excluded("/".join(parts[:depth])):
                return True
        return self._spec.match_file(rel)


class SizeGate:
    def __init__(self, limit_kb: int = DEFAULT_MAX_FILE_SIZE_KB) -> None:
        self.limit_kb = limit_kb

    @staticmethod
    def permits(byte_size: int, limit_kb: int = DEFAULT_MAX_FILE_SIZE_KB) -> bool:
        return byte_size / 1024 <= limit_kb

    def __call__(self, byte_size: int) -> bool:
        return self.permits(byte_size, self.limit_kb)


def annotate(content: str) -> Tuple[Line, ...]:
    """Number the lines of *content* from 1, splitting strictly on ``\\n``."""
    return tuple(
        Line(number=idx, content=text)
        for idx, text in enumerate(content.split("\n"), start=1)
    )


# File-scanning helpers
def iter_workspace_files(
    start: Path,
    root: Optional[Path] = None,
    path_filter: Optional["PathFilter"] = None,
) -> Iterator[Path]:
    """Yield every file below *start*, skipping VCS metadata.

    With a *path_filter*, directories it excludes (relative to *root*) are
    not descended into.
    """
    root = root or start
    for dirpath, dirnames, filenames in os.walk(start):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix() if current != root else ""
        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if path_filter is not None and path_filter.is_dir_excluded(rel_path):
                continue
            kept.append(name)
        dirnames[:] = kept
        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            yield current / filename


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


class FileCollector:
    """Enumerates a scope, applies the filters and reads surviving files."""

    def __init__(
        self,
        root: os.PathLike | str,
        config: Optional[FlattenConfig] = None,
        path_filter: Optional[PathFilter] = None,
    ) -> None:
        self.root = resolve_root(root)
        self.config = config or FlattenConfig()
        self.path_filter = path_filter or PathFilter.for_root(self.root, self.config)
        self.size_gate = SizeGate(self.config.size_limit_kb)

    def candidates(self, scope: Scope) -> Iterator[Path]:
        if scope.kind is ScopeKind.WORKSPACE:
            yield from iter_workspace_files(self.root, self.root, self.path_filter)
            return

        if scope.target is None:
            raise NoResourceSelectedError(f"No target given for {scope.kind.value} scope")
        target = _resolve_under(self.root, scope.target)
        try:
            target.relative_to(self.root)
        except ValueError:
            raise NoResourceSelectedError(
                f"'{scope.target}' is outside the workspace '{self.root}'"
            )

        if scope.kind is ScopeKind.SUBTREE:
            if not target.is_dir():
                raise NoResourceSelectedError(f"'{scope.target}' is not a directory")
            yield from iter_workspace_files(target, self.root, self.path_filter)
        else:
            if not target.is_file():
                raise NoResourceSelectedError(f"'{scope.target}' is not a file")
            yield target

    def included_paths(self, scope: Scope) -> List[str]:
        """Root-relative paths that survive the ignore rules (no reads)."""
        return [
            rel
            for rel in (_relative(p, self.root) for p in self.candidates(scope))
            if not self.path_filter.is_excluded(rel)
        ]

    def read_entry(self, path: Path) -> Optional[FileEntry]:
        rel = _relative(path, self.root)
        try:
            stat_result = path.stat()
        except OSError as e:
            log.debug("Skipping %s: %s", rel, e)
            return None
        if not stat.S_ISREG(stat_result.st_mode):
            return None
        if not self.size_gate(stat_result.st_size):
            log.debug(
                "Skipping %s: %d bytes over %d KB",
                rel,
                stat_result.st_size,
                self.size_gate.limit_kb,
            )
            return None
        try:
            content = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.debug("Skipping unreadable %s: %s", rel, e)
            return None
        return FileEntry(path="/" + rel, lines=annotate(content))

    def collect(self, scope: Optional[Scope] = None) -> List[FileEntry]:
        scope = scope or Scope.workspace()
        entries: List[FileEntry] = []
        for path in self.candidates(scope):
            rel = _relative(path, self.root)
            if self.path_filter.is_excluded(rel):
                continue
            entry = self.read_entry(path)
            if entry is not None:
                entries.append(entry)
        log.debug("Collected %d files under %s", len(entries), self.root)
        return entries


def collect(
    root: os.PathLike | str,
    scope: Optional[Scope] = None,
    config: Optional[FlattenConfig] = None,
) -> List[FileEntry]:
    return FileCollector(resolve_root(root), config).collect(scope)
