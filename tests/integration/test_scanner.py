"""Integration tests for directory scanning and ignore rules."""

import os
from pathlib import Path

import pytest

from code_merkle.errors import NotADirectoryScanError
from code_merkle.scanner import normalize_extensions, parse_ignore_file, scan_directory


def rel(root: Path, files: list[Path]) -> list[str]:
    return [f.relative_to(root.resolve()).as_posix() for f in files]


@pytest.fixture
def tree_root(tmp_path: Path) -> Path:
    """
    Structure:
        root/
        ├── main.py
        ├── README.MD
        ├── notes.txt
        ├── .hidden.py
        ├── build/out.py
        ├── logs/app.log
        ├── node_modules/dep.js
        └── src/
            ├── app.PY
            ├── generated/gen.py
            └── lib.ts
    """
    root = tmp_path / "root"
    for path in [
        "main.py",
        "README.MD",
        "notes.txt",
        ".hidden.py",
        "build/out.py",
        "logs/app.log",
        "node_modules/dep.js",
        "src/app.PY",
        "src/generated/gen.py",
        "src/lib.ts",
    ]:
        f = root / path
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_text(f"# {path}\n")
    return root


def test_returns_sorted_absolute_paths(tree_root: Path):
    files = scan_directory(tree_root)

    assert files == sorted(files)
    assert all(f.is_absolute() for f in files)
    assert ".hidden.py" not in rel(tree_root, files)


def test_extension_filter_case_insensitive(tree_root: Path):
    files = rel(tree_root, scan_directory(tree_root, extensions=["py", ".MD"]))

    assert "main.py" in files
    assert "src/app.PY" in files
    assert "README.MD" in files
    assert "notes.txt" not in files
    assert "src/lib.ts" not in files


def test_gitignore_rules(tree_root: Path):
    (tree_root / ".gitignore").write_text("# build output\nbuild/\n*.log\n")
    files = rel(tree_root, scan_directory(tree_root))

    assert "build/out.py" not in files
    assert "logs/app.log" not in files
    assert "main.py" in files


def test_project_ignore_file(tree_root: Path):
    (tree_root / ".cursorignore").write_text("notes.txt\n")
    files = rel(tree_root, scan_directory(tree_root))

    assert "notes.txt" not in files


def test_custom_ignore_filename(tree_root: Path):
    (tree_root / ".myignore").write_text("notes.txt\n")
    files = rel(tree_root, scan_directory(tree_root, ignore_filenames=(".myignore",)))

    assert "notes.txt" not in files


def test_nested_gitignore_is_relative_to_its_directory(tree_root: Path):
    (tree_root / "src" / ".gitignore").write_text("/generated/\n")
    files = rel(tree_root, scan_directory(tree_root))

    assert "src/generated/gen.py" not in files
    assert "src/lib.ts" in files


def test_negation_pattern(tree_root: Path):
    (tree_root / ".gitignore").write_text("*.txt\n!notes.txt\n")
    files = rel(tree_root, scan_directory(tree_root))

    assert "notes.txt" in files


def test_nested_negation_overrides_parent(tree_root: Path):
    (tree_root / ".gitignore").write_text("*.log\n")
    (tree_root / "logs" / "keep.log").write_text("keep\n")
    (tree_root / "logs" / ".gitignore").write_text("!keep.log\n")
    files = rel(tree_root, scan_directory(tree_root))

    assert "logs/keep.log" in files
    assert "logs/app.log" not in files


def test_nested_ignore_overrides_parent_negation(tree_root: Path):
    (tree_root / ".gitignore").write_text("*.ts\n!lib.ts\n")
    (tree_root / "src" / ".gitignore").write_text("lib.ts\n")
    files = rel(tree_root, scan_directory(tree_root))

    assert "src/lib.ts" not in files


def test_git_info_exclude(tree_root: Path):
    info = tree_root / ".git" / "info"
    info.mkdir(parents=True)
    (info / "exclude").write_text("notes.txt\n")

    assert "notes.txt" not in rel(tree_root, scan_directory(tree_root))
    assert "notes.txt" in rel(tree_root, scan_directory(tree_root, git_exclude=False))


def test_gitignore_negation_beats_git_info_exclude(tree_root: Path):
    info = tree_root / ".git" / "info"
    info.mkdir(parents=True)
    (info / "exclude").write_text("*.txt\n")
    (tree_root / ".gitignore").write_text("!notes.txt\n")

    assert "notes.txt" in rel(tree_root, scan_directory(tree_root))


def test_exclude_patterns(tree_root: Path):
    files = rel(tree_root, scan_directory(tree_root, exclude_patterns=["node_modules", "gen*"]))

    assert "node_modules/dep.js" not in files
    assert "src/generated/gen.py" not in files


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlinks_skipped(tree_root: Path):
    (tree_root / "link.py").symlink_to(tree_root / "main.py")
    files = rel(tree_root, scan_directory(tree_root))

    assert "link.py" not in files


def test_root_not_a_directory(tmp_path: Path):
    f = tmp_path / "file.txt"
    f.write_text("x")

    with pytest.raises(NotADirectoryScanError):
        scan_directory(f)
    with pytest.raises(NotADirectoryScanError):
        scan_directory(tmp_path / "missing")


def test_parse_ignore_file_strips_comments_and_blanks(tmp_path: Path):
    f = tmp_path / ".gitignore"
    f.write_text("# comment\n\n*.pyc\n  \n__pycache__/\n")
    assert parse_ignore_file(f) == ["*.pyc", "__pycache__/"]
    assert parse_ignore_file(tmp_path / "nonexistent") == []


def test_normalize_extensions():
    assert normalize_extensions([".PY", "ts", " .Md ", ""]) == {"py", "ts", "md"}
