"""
AUDITBELT Program Indexer: Source Discovery

Walks the audited program and lists the source files the sonar should
read. Uses git ls-files when the program lives in a git checkout
(respects .gitignore), otherwise walks the filesystem.

The list is sorted so metadata builds are reproducible.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

# Build output, tooling and test trees are never indexed
SKIP_DIRS = {
    ".git", ".anchor", "target", "node_modules", ".cargo",
    "tests", "test", "migrations", "__pycache__", ".idea", ".vscode",
}

SOURCE_EXTENSIONS = {".rs"}


@dataclass
class SourceFile:
    path: Path
    relative_path: str
    size_bytes: int
    is_lib: bool = False

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class ProgramIndex:
    """Source files of one audited program."""
    root: Path
    files: list[SourceFile] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def lib_file(self) -> SourceFile | None:
        for entry in self.files:
            if entry.is_lib:
                return entry
        return None

    def relative_paths(self) -> list[str]:
        return [entry.relative_path for entry in self.files]


def build_index(program_dir: Path, max_depth: int = 8) -> ProgramIndex:
    """
    List the program's source files.

    Raises FileNotFoundError if the program directory does not exist.
    """
    program_dir = program_dir.resolve()
    if not program_dir.is_dir():
        raise FileNotFoundError(f"Program directory not found: {program_dir}")

    index = ProgramIndex(root=program_dir)

    files = _git_ls_files(program_dir)
    if not files:
        files = _walk_files(program_dir, max_depth)

    for rel_path in sorted(set(files)):
        parts = rel_path.split("/")
        if any(p in SKIP_DIRS for p in parts[:-1]):
            continue
        full = program_dir / rel_path
        if full.suffix not in SOURCE_EXTENSIONS or not full.is_file():
            continue
        index.files.append(SourceFile(
            path=full,
            relative_path=rel_path,
            size_bytes=full.stat().st_size,
            is_lib=rel_path == "lib.rs",
        ))

    logger.info(f"[INDEX] Indexed {index.total_files} source files under {program_dir}")
    return index


def _git_ls_files(program_dir: Path) -> list[str]:
    """Tracked Rust sources under program_dir, relative to it."""
    try:
        proc = subprocess.run(
            ["git", "ls-files", "--", "*.rs"],
            cwd=program_dir,
            capture_output=True,
            text=True,
            timeout=15,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"[INDEX] git ls-files unavailable: {e}")
        return []
    if proc.returncode != 0:
        logger.debug(f"[INDEX] {program_dir} is not a git checkout, walking instead")
        return []
    return [line for line in proc.stdout.splitlines() if line.strip()]


def _walk_files(program_dir: Path, max_depth: int = 8) -> list[str]:
    """Rust sources found on disk, pruning SKIP_DIRS and anything deeper than max_depth."""
    found: list[str] = []
    pending = [(program_dir, 1)]
    while pending:
        folder, depth = pending.pop()
        for entry in folder.iterdir():
            if entry.is_dir():
                if entry.name not in SKIP_DIRS and depth < max_depth:
                    pending.append((entry, depth + 1))
            elif entry.suffix in SOURCE_EXTENSIONS:
                found.append(entry.relative_to(program_dir).as_posix())
    return found
