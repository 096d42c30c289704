"""
AUDITBELT Sonar: Line Scanner

Finds declarations in source text without parsing it. A declaration
opens on a line that starts with one of the kind's open tokens and also
carries a confirm token. It closes on the first later line that holds a
close token at exactly the opening line's indentation.

Usage:
    results = scan(content, DeclarationKind.FUNCTION)
    entrypoints = scan_region(lib_rs, "#[program]", DeclarationKind.FUNCTION)

The scanner is a pure function of its input: no I/O, no shared state.
"""

from __future__ import annotations

from loguru import logger

from auditbelt.sonar.errors import (
    MalformedSignatureError,
    RegionMarkerNotFoundError,
    UnbalancedDeclarationError,
)
from auditbelt.sonar.kinds import DeclarationKind, KindConfig, kind_config
from auditbelt.sonar.results import NO_NAME, ScanResult

VISIBILITY_MARKER = "pub"


# ---------------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------------

def split_lines(content: str) -> list[str]:
    """
    Split on newlines only, dropping one trailing carriage return per line.
    A final newline does not produce an empty last line.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def leading_whitespace_width(line: str) -> int:
    """Width of the line's leading whitespace, counted in UTF-8 bytes."""
    width = 0
    for ch in line:
        if not ch.isspace() or ch == "\n":
            break
        width += len(ch.encode("utf-8"))
    return width


# ---------------------------------------------------------------------------
# Sonar
# ---------------------------------------------------------------------------

class Sonar:
    """
    One scan pass over `content` for a single declaration kind.

    strict=True makes a malformed signature abort the scan.
    strict=False logs it and skips that candidate.
    """

    def __init__(self, content: str, kind: DeclarationKind, strict: bool = True):
        self.content = content
        self.kind = kind
        self.strict = strict
        self.config: KindConfig = kind_config(kind)
        self.lines = split_lines(content)

    def scan(self) -> list[ScanResult]:
        results: list[ScanResult] = []
        for index, line in enumerate(self.lines):
            if not self.is_open(line):
                continue
            width = leading_whitespace_width(line)
            end = self.closing_line_index(index, width, line)
            try:
                name, is_public = self.name_and_visibility(line)
            except MalformedSignatureError:
                if self.strict:
                    raise
                logger.warning(f"[SONAR] Skipping malformed {self.kind.value} at line {index}: {line.strip()}")
                continue
            results.append(ScanResult(
                name=name,
                raw_text=self.slice(index, end),
                indentation_width=width,
                kind=self.kind,
                start_line=index,
                end_line=end,
                is_public=is_public,
            ))

        results.sort(key=lambda result: result.name)
        logger.debug(f"[SONAR] {self.kind.value}: {len(results)} results")
        return results

    def is_open(self, line: str) -> bool:
        """The line carries open and confirm tokens and starts with an open token."""
        tokens = self.config.filters
        if not any(token in line for token in tokens.open):
            return False
        if not any(token in line for token in tokens.confirm):
            return False
        stripped = line.strip()
        return any(stripped.startswith(token) for token in tokens.open)

    def closing_line_index(self, start: int, width: int, line: str) -> int:
        close_tokens = self.config.filters.close
        if self.config.single_line_close and any(token in line for token in close_tokens):
            return start

        candidates = [" " * width + token for token in close_tokens]
        for index in range(start + 1, len(self.lines)):
            current = self.lines[index]
            if self.config.close_contains:
                if any(candidate in current for candidate in candidates):
                    return index
            elif current in candidates:
                return index

        raise UnbalancedDeclarationError(self.kind, start, line)

    def name_and_visibility(self, line: str) -> tuple[str, bool]:
        if not self.config.named:
            return NO_NAME, False
        if self.config.impl_name:
            return self.impl_name(line), False

        tokens = line.split()
        is_public = bool(tokens) and tokens[0] == VISIBILITY_MARKER
        if is_public:
            tokens = tokens[1:]
        # tokens[0] is the keyword (fn / struct / mod / trait)
        if len(tokens) < 2:
            raise MalformedSignatureError(line)
        name = tokens[1].split("<", 1)[0].split("(", 1)[0]
        if not name:
            raise MalformedSignatureError(line, "empty name")
        return name, is_public

    def impl_name(self, line: str) -> str:
        """`impl<T> Trait<T> for Type<T> {` gives `Trait for Type`."""
        header = line.strip()[len("impl"):]
        if header.startswith("<"):
            depth = 0
            for position, ch in enumerate(header):
                if ch == "<":
                    depth += 1
                elif ch == ">":
                    depth -= 1
                    if depth == 0:
                        header = header[position + 1:]
                        break
        trait, found, target = header.partition(" for ")
        trait = trait.strip().split("<", 1)[0]
        target = target.split("{", 1)[0].split(" where", 1)[0].strip().split("<", 1)[0]
        if not found or not trait or not target:
            raise MalformedSignatureError(line, "expected `impl Trait for Type`")
        return f"{trait} for {target}"

    def slice(self, start: int, end: int) -> str:
        return "\n".join(self.lines[start:end + 1])


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def scan(content: str, kind: DeclarationKind, *, strict: bool = True) -> list[ScanResult]:
    """Scan the whole content for one kind. Results are sorted by name."""
    return Sonar(content, kind, strict=strict).scan()


def region_bounds(content: str, region_marker: str, kind: DeclarationKind) -> tuple[int, int]:
    """
    Locate the region a marker opens.

    The marker line is the first line containing `region_marker`. The region
    ends at the first closing candidate of `kind` at the marker's indentation.
    """
    sonar = Sonar(content, kind)
    for index, line in enumerate(sonar.lines):
        if region_marker in line:
            width = leading_whitespace_width(line)
            return index, sonar.closing_line_index(index, width, "")
    raise RegionMarkerNotFoundError(region_marker)


def scan_region(
    content: str,
    region_marker: str,
    kind: DeclarationKind,
    *,
    strict: bool = True,
) -> list[ScanResult]:
    """
    Scan only the region opened by `region_marker`.

    Line indices in the results are relative to the region; use
    region_bounds() to map them back onto the full content.
    """
    start, end = region_bounds(content, region_marker, kind)
    region = "\n".join(split_lines(content)[start:end + 1])
    logger.debug(f"[SONAR] Region {region_marker!r}: lines {start}..{end}")
    return Sonar(region, kind, strict=strict).scan()
