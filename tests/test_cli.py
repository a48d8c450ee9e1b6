"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pyperclip
import pytest

from flatten_workspace import cli
from flatten_workspace.cli import _parse_args, build_config, main


def test_parse_args_defaults() -> None:
    ns = _parse_args([])
    assert ns.use_gitignore is True
    assert ns.max_size_kb == 1024
    assert ns.ignore == []
    assert ns.scope is None
    assert ns.format == "text"


def test_parse_args_repeatable_ignore_and_gitignore_toggle() -> None:
    ns = _parse_args(["--ignore", "*.log", "--ignore", "!keep.log", "--no-use-gitignore"])
    assert ns.ignore == ["*.log", "!keep.log"]
    assert ns.use_gitignore is False


def test_out_and_stdout_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        _parse_args(["--out", "x.txt", "--stdout"])


def test_build_config_appends_config_file_patterns(tmp_path: Path) -> None:
    cfg = tmp_path / "patterns.txt"
    cfg.write_text("# extra\ndist/\n", encoding="utf-8")
    ns = _parse_args(["--ignore", "*.log", "--config", str(cfg), "--max-size-kb", "7"])
    config = build_config(ns)
    assert config.ignore_patterns == ["*.log", "dist/"]
    assert config.max_file_size_kb == 7


def test_main_prints_to_stdout(workspace: Path, capsys) -> None:
    main(["--root", str(workspace), "--stdout"])
    out = capsys.readouterr().out
    assert out.startswith("├── README.md\n└── src\n    └── a.ts\n\n")
    assert out.index("/README.md:") < out.index("/src/a.ts:")


def test_main_copies_to_clipboard_by_default(workspace: Path, monkeypatch, capsys) -> None:
    copied: list[str] = []
    monkeypatch.setattr(cli.pyperclip, "copy", copied.append)

    main(["--root", str(workspace), "--scope", "src"])

    assert len(copied) == 1
    assert copied[0].startswith("└── src\n    └── a.ts\n\n")
    assert "copied to clipboard" in capsys.readouterr().err


def test_main_reports_clipboard_failure(workspace: Path, monkeypatch, capsys) -> None:
    def _broken(text: str) -> None:
        raise pyperclip.PyperclipException("no clipboard mechanism")

    monkeypatch.setattr(cli.pyperclip, "copy", _broken)

    with pytest.raises(SystemExit) as exc:
        main(["--root", str(workspace)])
    assert exc.value.code == 1
    assert "Error: Could not copy to clipboard" in capsys.readouterr().err


def test_main_writes_output_file(workspace: Path, tmp_path: Path) -> None:
    out_file = tmp_path / "out" / "snapshot.txt"
    main(["--root", str(workspace), "--out", str(out_file), "--ignore", "*.md"])
    text = out_file.read_text(encoding="utf-8")
    assert "/README.md" not in text
    assert "/src/a.ts:" in text


def test_main_tree_only(workspace: Path, capsys) -> None:
    main(["--root", str(workspace), "--tree-only", "--stdout"])
    assert capsys.readouterr().out == "├── README.md\n└── src\n    └── a.ts\n"


def test_main_json_format(workspace: Path, capsys) -> None:
    main(["--root", str(workspace), "--format", "json", "--stdout"])
    out = capsys.readouterr().out
    assert '"path": "/README.md"' in out
    assert '"lineNumber": 1' in out


def test_main_warns_when_nothing_to_copy(workspace: Path, capsys) -> None:
    main(["--root", str(workspace), "--scope", "src/a.ts", "--ignore", "*.ts", "--stdout"])
    captured = capsys.readouterr()
    assert captured.out == "\n"
    assert "Nothing to copy" in captured.err


def test_main_missing_root_exits_with_error(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["--root", str(tmp_path / "missing"), "--stdout"])
    assert exc.value.code == 1
    assert "does not exist" in capsys.readouterr().err


def test_main_missing_scope_exits_with_error(workspace: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["--root", str(workspace), "--scope", "nope", "--stdout"])
    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_tree_only_rejects_scope(capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        _parse_args(["--tree-only", "--scope", "src"])
    assert exc.value.code == 2
    assert "--scope cannot be combined with --tree-only" in capsys.readouterr().err
