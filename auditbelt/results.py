"""
AUDITBELT Findings Result

Gathers the accepted findings into one report:

    audit_result/
        findings_result.md   ← table of findings + every finding, numbered
        figures/             ← copy of auditor/figures

Findings are numbered in file order. `finding prepare` already put the
severity rank in front of every file name, so the numbering follows
severity. Each finding header gets its code (`## KS-01: Title`).
"""

from __future__ import annotations

import shutil
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from auditbelt.config import AuditConfig
from auditbelt.findings import SEVERITY_RANK, FindingError, finding_files

RESULT_HEADER = "# Findings result"
TABLE_HEADER = "## Table of findings"
LIST_HEADER = "## List of Findings"
RATED_LEVELS = ("High", "Medium", "Low")


class FindingSummary(BaseModel):
    code: str
    title: str
    severity: str
    status: str
    impact: str | None = None
    likelihood: str | None = None
    difficulty: str | None = None
    content: str

    def table_row(self) -> str:
        return f"| {self.code} | {self.severity} | {self.title} | {self.status} |"


def finding_code(prefix: str, index: int) -> str:
    """Zero-based index → `KS-01`, `KS-02`, ... `KS-11`."""
    return f"{prefix}-{index + 1:02d}"


def number_finding(content: str, code: str) -> str:
    """Put the finding code in front of the title on the first line."""
    first_line, newline, rest = content.partition("\n")
    if not first_line.startswith("## "):
        raise FindingError(f"Finding does not start with a `## ` title: {first_line!r}")
    return f"## {code}: {first_line[3:].strip()}{newline}{rest}"


def _field(lines: list[str], label: str) -> str:
    for line in lines:
        if label in line:
            return line.replace(label, "").strip()
    raise FindingError(f"No {label} line in finding")


def _rating_row(lines: list[str]) -> list[str]:
    """Impact, likelihood and difficulty from the table under the status line."""
    for line in lines:
        if not line.strip().startswith("|"):
            continue
        cells = [cell.strip() for cell in line.strip().strip("|").split("|")]
        if len(cells) == 3 and all(cell in RATED_LEVELS for cell in cells):
            return cells
    raise FindingError("No impact/likelihood/difficulty row in finding")


def parse_finding(content: str, code: str) -> FindingSummary:
    numbered = number_finding(content, code)
    lines = numbered.splitlines()
    severity = _field(lines, "**Severity:**")
    if severity.lower() not in SEVERITY_RANK:
        raise FindingError(f"Severity {severity!r} not recognized in {code}")

    summary = FindingSummary(
        code=code,
        title=lines[0].split(":", 1)[1].strip(),
        severity=severity,
        status=_field(lines, "**Status:**"),
        content=numbered,
    )
    if severity.lower() != "informational":
        summary.impact, summary.likelihood, summary.difficulty = _rating_row(lines)
    return summary


def render_findings_result(findings: list[FindingSummary]) -> str:
    table = [
        "| # | Severity | Description | Status |",
        "| :-: | :------: | :---------- | :----: |",
        *(finding.table_row() for finding in findings),
    ]
    parts = [RESULT_HEADER, TABLE_HEADER, "\n".join(table), LIST_HEADER]
    for finding in findings:
        # figures are copied next to the result file
        parts.append(finding.content.rstrip("\n").replace("../../figures", "./figures"))
        parts.append("---")
    return "\n\n".join(parts) + "\n"


def _copy_figures(source: Path, target: Path) -> list[Path]:
    if target.exists():
        shutil.rmtree(target)
    target.mkdir(parents=True)
    copied = []
    if source.is_dir():
        for figure in sorted(source.iterdir()):
            if figure.is_file() and figure.name != ".gitkeep":
                copied.append(Path(shutil.copy2(figure, target / figure.name)))
    return copied


def build_findings_result(config: AuditConfig) -> list[FindingSummary]:
    """Write findings_result.md and copy the figures. Returns the numbered findings."""
    if not config.findings_accepted.is_dir():
        raise FindingError(f"Folder not found: {config.findings_accepted}")

    findings = []
    for index, path in enumerate(finding_files(config.findings_accepted)):
        code = finding_code(config.finding_code_prefix, index)
        try:
            findings.append(parse_finding(path.read_text(encoding="utf-8"), code))
        except FindingError as e:
            raise FindingError(f"{path.name}: {e}") from e

    config.audit_result_dir.mkdir(parents=True, exist_ok=True)
    figures = _copy_figures(config.figures_dir, config.audit_result_dir / "figures")
    config.findings_result_path.write_text(render_findings_result(findings), encoding="utf-8")
    logger.info(
        f"[RESULT] {len(findings)} finding(s), {len(figures)} figure(s) → {config.findings_result_path}"
    )
    return findings
