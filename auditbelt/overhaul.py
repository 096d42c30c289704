"""
AUDITBELT Code Overhaul

One CO report per entrypoint, moving through three folders:

    to_review/ → started/ → finished/

`auditbelt sonar` queues one to_review file per entrypoint. Starting a CO
requires that file and replaces it with the report rendered from
metadata: parameters and signers of the entrypoint, its accounts struct,
and every validation call found in the entrypoint and its handler.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from loguru import logger

from auditbelt.config import AuditConfig
from auditbelt.figures import read_span
from auditbelt.metadata import (
    EntrypointMetadata,
    MetadataError,
    MetadataSection,
    MetadataStore,
)
from auditbelt.sonar import DeclarationKind, SonarError, scan
from auditbelt.templates import SIGNER_PLACEHOLDER, code_overhaul_content


class OverhaulError(Exception):
    pass


def _record_text(config: AuditConfig, record) -> str:
    return "\n".join(read_span(config.root / record.path, record.start_line, record.end_line))


def collect_validations(config: AuditConfig, store: MetadataStore, entrypoint: EntrypointMetadata) -> list[str]:
    """Validation calls in the entrypoint body and in its handler function."""
    sources = [_record_text(config, entrypoint)]
    if entrypoint.handler_function:
        handler_name = entrypoint.handler_function.split("::")[-1]
        for function in store.find(MetadataSection.FUNCTIONS, name=handler_name):
            sources.append(_record_text(config, function))

    validations = []
    for source in sources:
        try:
            results = scan(source, DeclarationKind.VALIDATION_CALL, strict=False)
        except SonarError as e:
            logger.warning(f"[CO] Skipping validations of {entrypoint.name}: {e}")
            continue
        for result in results:
            text = result.raw_text.strip()
            if text not in validations:
                validations.append(text)
    return validations


def render_code_overhaul(config: AuditConfig, store: MetadataStore, entrypoint_name: str) -> str:
    entrypoint = store.get(MetadataSection.ENTRYPOINTS, name=entrypoint_name)
    context_accounts = ""
    if entrypoint.context_name:
        structs = store.find(MetadataSection.STRUCTS, name=entrypoint.context_name)
        if structs:
            context_accounts = _record_text(config, structs[0])

    return code_overhaul_content(
        entrypoint=entrypoint.name,
        validations=collect_validations(config, store, entrypoint),
        signers=entrypoint.signers,
        parameters=entrypoint.parameters,
        context_accounts=context_accounts,
    )


def seed_code_overhaul(config: AuditConfig, entrypoint_names: list[str]) -> list[Path]:
    """Queue a to_review file for every entrypoint without a CO yet."""
    config.co_to_review.mkdir(parents=True, exist_ok=True)
    seeded = []
    for name in entrypoint_names:
        filename = f"{name}.md"
        if any((folder / filename).exists()
               for folder in (config.co_to_review, config.co_started, config.co_finished)):
            continue
        path = config.co_to_review / filename
        path.write_text(f"# {name}\n", encoding="utf-8")
        seeded.append(path)
    if seeded:
        logger.info(f"[CO] Queued {len(seeded)} entrypoint(s) for review")
    return seeded


def start_code_overhaul(config: AuditConfig, entrypoint_name: str) -> Path:
    store = MetadataStore(config.metadata_path)
    target = config.co_started / f"{entrypoint_name}.md"
    if target.exists() or (config.co_finished / target.name).exists():
        raise OverhaulError(f"Code overhaul for {entrypoint_name} already started")
    queued = config.co_to_review / target.name
    if not queued.exists():
        raise OverhaulError(f"{entrypoint_name} is not in {config.co_to_review}; run `auditbelt sonar` first")

    try:
        content = render_code_overhaul(config, store, entrypoint_name)
    except MetadataError as e:
        raise OverhaulError(str(e)) from e

    config.co_started.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    queued.unlink()
    logger.info(f"[CO] Started {entrypoint_name}")
    return target


def finish_code_overhaul(config: AuditConfig, entrypoint_name: str) -> Path:
    source = config.co_started / f"{entrypoint_name}.md"
    if not source.exists():
        raise OverhaulError(f"Code overhaul for {entrypoint_name} is not started")
    if SIGNER_PLACEHOLDER in source.read_text(encoding="utf-8"):
        raise OverhaulError(f"Complete the signers description of {entrypoint_name} before finishing")

    config.co_finished.mkdir(parents=True, exist_ok=True)
    target = config.co_finished / source.name
    shutil.move(str(source), str(target))
    logger.info(f"[CO] Finished {entrypoint_name}")
    return target


def list_code_overhaul(config: AuditConfig) -> dict[str, list[str]]:
    def names(folder: Path) -> list[str]:
        if not folder.is_dir():
            return []
        return sorted(p.stem for p in folder.glob("*.md"))

    return {
        "to_review": names(config.co_to_review),
        "started": names(config.co_started),
        "finished": names(config.co_finished),
    }
