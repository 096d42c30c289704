"""
AUDITBELT Findings

Findings live as Markdown files under auditor/findings/:

    to_review/  → drafted, not yet triaged
    accepted/   → confirmed, goes to the report
    rejected/   → discarded

`prepare_findings` prefixes every to-review file with its severity rank
so the folder sorts high → informational.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from loguru import logger

from auditbelt.config import AuditConfig
from auditbelt.templates import finding_content, informational_content, sentence_case, snake_case

SEVERITY_RANK = {
    "high": "1",
    "medium": "2",
    "low": "3",
    "informational": "4",
}
_RANK_PREFIX_RE = re.compile(r"^[1-4]-")


class FindingError(Exception):
    pass


def _require_dir(path: Path) -> None:
    if not path.is_dir():
        raise FindingError(f"Folder not found: {path}")


def finding_files(folder: Path) -> list[Path]:
    return sorted(p for p in folder.glob("*.md") if p.is_file())


def create_finding(config: AuditConfig, name: str, informational: bool = False) -> Path:
    """Write a new finding from the template into to_review/."""
    _require_dir(config.findings_to_review)
    file_name = snake_case(name)
    if not file_name:
        raise FindingError(f"Invalid finding name: {name!r}")

    path = config.findings_to_review / f"{file_name}.md"
    existing = [p.name for p in finding_files(config.findings_to_review)]
    if path.name in existing or any(_RANK_PREFIX_RE.sub("", e) == path.name for e in existing):
        raise FindingError(f"Finding file already exists: {path}")

    title = sentence_case(name)
    content = informational_content(title) if informational else finding_content(title)
    path.write_text(content, encoding="utf-8")
    logger.info(f"[FINDING] Created {path}")
    return path


def read_severity(path: Path) -> str:
    for line in path.read_text(encoding="utf-8").splitlines():
        if "Severity:" in line:
            return line.replace("**Severity:**", "").replace(" ", "").lower()
    raise FindingError(f"No severity line in {path}")


def prepare_findings(config: AuditConfig) -> list[Path]:
    """Rename every to-review finding to `<rank>-<name>.md`."""
    _require_dir(config.findings_to_review)
    renamed = []
    for path in finding_files(config.findings_to_review):
        severity = read_severity(path)
        rank = SEVERITY_RANK.get(severity)
        if rank is None:
            raise FindingError(f"Severity {severity!r} not recognized in {path}")
        base_name = _RANK_PREFIX_RE.sub("", path.name)
        target = path.with_name(f"{rank}-{base_name}")
        if target != path:
            path.rename(target)
            logger.debug(f"[FINDING] {path.name} → {target.name}")
        renamed.append(target)
    logger.info(f"[FINDING] Prepared {len(renamed)} to-review findings")
    return renamed


def _find_to_review(config: AuditConfig, name: str) -> Path:
    file_name = f"{snake_case(name)}.md"
    for path in finding_files(config.findings_to_review):
        if path.name == file_name or _RANK_PREFIX_RE.sub("", path.name) == file_name:
            return path
    raise FindingError(f"Finding {name!r} not found in {config.findings_to_review}")


def _move(config: AuditConfig, name: str, destination: Path) -> Path:
    _require_dir(destination)
    source = _find_to_review(config, name)
    target = destination / source.name
    shutil.move(str(source), str(target))
    logger.info(f"[FINDING] Moved {source.name} to {destination.name}/")
    return target


def accept_finding(config: AuditConfig, name: str) -> Path:
    return _move(config, name, config.findings_accepted)


def reject_finding(config: AuditConfig, name: str) -> Path:
    return _move(config, name, config.findings_rejected)
