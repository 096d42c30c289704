"""Result model produced by a sonar scan."""

from __future__ import annotations

from dataclasses import dataclass, replace

from auditbelt.sonar.kinds import DeclarationKind

NO_NAME = "NO_NAME"


@dataclass(frozen=True)
class ScanResult:
    name: str
    raw_text: str
    indentation_width: int
    kind: DeclarationKind
    start_line: int  # zero-based, inclusive
    end_line: int  # zero-based, inclusive
    is_public: bool = False

    @property
    def first_line(self) -> str:
        return self.raw_text.split("\n", 1)[0]

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def shifted(self, offset: int) -> "ScanResult":
        """Copy of this result with both line indices moved by `offset`."""
        return replace(
            self,
            start_line=self.start_line + offset,
            end_line=self.end_line + offset,
        )
