"""
AUDITBELT Entrypoints

An entrypoint is a function declared directly inside the program module
(the block opened by `#[program]` in lib.rs). For each one we record its
parameters, the accounts struct behind `ctx`, the handler it delegates
to, and the signers and mutable accounts of that struct.
"""

from __future__ import annotations

import re
from typing import Callable

from loguru import logger

from auditbelt.metadata.models import EntrypointMetadata
from auditbelt.sonar import (
    DeclarationKind,
    ScanResult,
    context_name,
    extract_parameters,
    region_bounds,
    scan,
    scan_region,
)

_CALL_RE = re.compile(r"([A-Za-z_][\w]*(?:::[A-Za-z_][\w]*)*)\s*(?:::<[^>]*>)?\s*\(")
_MUT_RE = re.compile(r"\bmut\b")
_KEYWORDS = {"if", "match", "while", "for", "return", "Ok", "Err", "Some"}

ContextLookup = Callable[[str], "str | None"]


def find_entrypoint_results(lib_content: str, marker: str) -> list[ScanResult]:
    """Functions directly inside the marker's module, in file line numbers."""
    start, _ = region_bounds(lib_content, marker, DeclarationKind.FUNCTION)
    results = [
        result.shifted(start)
        for result in scan_region(lib_content, marker, DeclarationKind.FUNCTION)
    ]
    if not results:
        return []
    # nested helper functions sit deeper than the entrypoints themselves
    top_width = min(result.indentation_width for result in results)
    return [result for result in results if result.indentation_width == top_width]


def handler_function(function_text: str) -> str:
    """First function called in the body, e.g. `handle_create_game`."""
    _, _, body = function_text.partition("{")
    for match in _CALL_RE.finditer(body):
        name = match.group(1)
        if name not in _KEYWORDS:
            return name
    return ""


def field_name(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("pub "):
        stripped = stripped[4:]
    return stripped.split(":", 1)[0].strip()


def signers(context_text: str) -> list[str]:
    return [
        field_name(line)
        for line in context_text.split("\n")
        if "Signer<" in line and ":" in line
    ]


def mut_accounts(context_text: str) -> list[str]:
    accounts = []
    for result in scan(context_text, DeclarationKind.ACCOUNT_CONTEXT, strict=False):
        attribute = "\n".join(result.raw_text.split("\n")[:-1])
        if _MUT_RE.search(attribute):
            accounts.append(field_name(result.raw_text.split("\n")[-1]))
    return sorted(set(accounts))


def extract_entrypoints(
    lib_content: str,
    lib_path: str,
    marker: str,
    context_lookup: ContextLookup | None = None,
) -> list[EntrypointMetadata]:
    entrypoints = []
    for result in find_entrypoint_results(lib_content, marker):
        parameters = extract_parameters(result.raw_text)
        context = context_name(parameters) or ""
        context_text = context_lookup(context) if (context_lookup and context) else None
        if context and context_text is None:
            logger.warning(f"[METADATA] Context struct {context} for {result.name} not found")

        entrypoints.append(EntrypointMetadata(
            name=result.name,
            path=lib_path,
            start_line=result.start_line + 1,
            end_line=result.end_line + 1,
            handler_function=handler_function(result.raw_text),
            context_name=context,
            parameters=[p for p in parameters if "Context<" not in p],
            signers=signers(context_text) if context_text else [],
            mut_accounts=mut_accounts(context_text) if context_text else [],
        ))

    logger.info(f"[METADATA] Found {len(entrypoints)} entrypoints in {lib_path}")
    return entrypoints
