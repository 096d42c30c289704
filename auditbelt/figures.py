"""
AUDITBELT Figures

Prepares the source snippet behind a report screenshot. Rendering the
PNG is left to an external tool; this module decides which lines go in,
whether comments and filtered lines are dropped, and what line number
the figure starts at.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from auditbelt.sonar import split_lines


@dataclass
class SnippetOptions:
    include_path: bool = True
    filter_comments: bool = False
    filters: list[str] = field(default_factory=list)
    show_line_number: bool = True
    offset_to_start_line: bool = True


@dataclass
class Snippet:
    name: str
    content: str
    offset: int  # line number printed next to the first snippet line
    show_line_number: bool = True


def read_span(path: Path, start_line: int, end_line: int) -> list[str]:
    """One-based, inclusive slice of a file's lines."""
    lines = split_lines(path.read_text(encoding="utf-8"))
    if start_line < 1 or end_line > len(lines) or start_line > end_line:
        raise ValueError(f"Span {start_line}..{end_line} outside {path} ({len(lines)} lines)")
    return lines[start_line - 1:end_line]


def strip_comments(lines: list[str]) -> list[str]:
    """Drop comment-only lines and cut trailing `//` comments."""
    kept = []
    for line in lines:
        stripped = line.strip()
        if stripped:
            first_token = stripped.split(" ", 1)[0]
            if "//" in first_token:
                continue
            if "//" in line:
                line = line.split("//", 1)[0]
        kept.append(line)
    return kept


def display_path(path: str, program_name: str) -> str:
    """Path from `<program>/src/` onwards, the way it should appear in a figure."""
    splitter = f"{program_name}/src/"
    rest = path.split(splitter)[-1]
    return f"{splitter}{rest}".lstrip("/")


def render_snippet(
    lines: list[str],
    name: str,
    path: str,
    start_line: int,
    options: SnippetOptions,
    program_name: str,
) -> Snippet:
    if options.filter_comments:
        lines = strip_comments(lines)
    if options.filters:
        lines = [line for line in lines if not any(f in line for f in options.filters)]

    offset = start_line if options.offset_to_start_line else 0
    content = "\n".join(lines)
    if options.include_path:
        content = f"// {display_path(path, program_name)}\n\n{content}"
        if options.offset_to_start_line:
            # path header and blank line take two numbers
            offset = max(offset - 2, 0)

    return Snippet(name=name, content=content, offset=offset, show_line_number=options.show_line_number)


def write_snippet(snippet: Snippet, figures_dir: Path) -> Path:
    figures_dir.mkdir(parents=True, exist_ok=True)
    target = figures_dir / f"{snippet.name}.rs"
    target.write_text(snippet.content + "\n", encoding="utf-8")
    logger.info(f"[FIGURE] Wrote {target} (offset {snippet.offset})")
    return target
