"""Scanner error taxonomy."""

from __future__ import annotations

from auditbelt.sonar.kinds import DeclarationKind


class SonarError(Exception):
    """Base class for every scanner failure."""


class UnbalancedDeclarationError(SonarError):
    """An opening line has no matching closing line before end of input."""

    def __init__(self, kind: DeclarationKind, start_line: int, line: str = ""):
        self.kind = kind
        self.start_line = start_line
        self.line = line
        super().__init__(
            f"No closing line found for {kind.value} opened at line {start_line}: {line.strip()!r}"
        )


class MalformedSignatureError(SonarError):
    """Name or parameter extraction found fewer tokens than it needs."""

    def __init__(self, line: str, reason: str = "not enough tokens"):
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed signature ({reason}): {line.strip()!r}")


class RegionMarkerNotFoundError(SonarError):
    """The marker passed to a region scan does not occur in the content."""

    def __init__(self, marker: str):
        self.marker = marker
        super().__init__(f"Region marker not found: {marker!r}")
