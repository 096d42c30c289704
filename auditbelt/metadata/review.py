"""
AUDITBELT Reviewer: Human Gate for Sonar Candidates

The sonar is lexical, so it can report things that are not really
declarations. Before a candidate becomes metadata a reviewer confirms it
and picks its subtype. The builder only sees the Reviewer protocol:

  - AutoReviewer: accepts everything, classifies with heuristics
  - ConsoleReviewer: asks the auditor through rich prompts
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.syntax import Syntax

from auditbelt.metadata.models import FunctionType, StructType, TraitType
from auditbelt.sonar import DeclarationKind, ScanResult, SonarError, scan


class ReviewContext:
    """What a reviewer may look at besides the result itself."""

    def __init__(self, file_lines: list[str], entrypoint_names: set[str] | None = None):
        self.file_lines = file_lines
        self.entrypoint_names = entrypoint_names or set()

    def attributes_above(self, result: ScanResult) -> list[str]:
        """Attribute lines (`#[...]`) directly above the declaration."""
        attributes = []
        index = result.start_line - 1
        while index >= 0:
            line = self.file_lines[index].strip()
            if not line.startswith("#["):
                break
            attributes.append(line)
            index -= 1
        return attributes


class Reviewer(Protocol):
    def confirm(self, result: ScanResult, path: str) -> bool: ...

    def classify(
        self,
        result: ScanResult,
        path: str,
        choices: list[str],
        context: ReviewContext,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------

def guess_subtype(result: ScanResult, context: ReviewContext) -> str:
    if result.kind == DeclarationKind.STRUCT:
        attributes = " ".join(context.attributes_above(result))
        if "derive(Accounts" in attributes:
            return StructType.CONTEXT_ACCOUNTS.value
        if "#[account" in attributes:
            return StructType.ACCOUNT.value
        if "AnchorSerialize" in attributes:
            return StructType.INPUT.value
        return StructType.OTHER.value

    if result.kind == DeclarationKind.FUNCTION:
        if result.name in context.entrypoint_names:
            return FunctionType.ENTRY_POINT.value
        if result.name.startswith("handle"):
            return FunctionType.HANDLER.value
        try:
            validations = scan(result.raw_text, DeclarationKind.VALIDATION_CALL, strict=False)
        except SonarError as e:
            logger.debug(f"[METADATA] No subtype hint for {result.name}: {e}")
            return FunctionType.OTHER.value
        if validations:
            return FunctionType.VALIDATOR.value
        return FunctionType.OTHER.value

    if result.kind == DeclarationKind.TRAIT_IMPL:
        return TraitType.IMPLEMENTATION.value
    return TraitType.DEFINITION.value


# ---------------------------------------------------------------------------
# Reviewers
# ---------------------------------------------------------------------------

class AutoReviewer:
    """Non-interactive reviewer. Accepts every candidate."""

    def confirm(self, result: ScanResult, path: str) -> bool:
        return True

    def classify(
        self,
        result: ScanResult,
        path: str,
        choices: list[str],
        context: ReviewContext,
    ) -> str:
        guess = guess_subtype(result, context)
        return guess if guess in choices else choices[-1]


class ConsoleReviewer:
    """Asks the auditor about every candidate."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def confirm(self, result: ScanResult, path: str) -> bool:
        self.console.print(
            f"\n[magenta]Possible {result.kind.value} found at "
            f"{path}:{result.start_line + 1}[/]"
        )
        self.console.print(Syntax(
            result.raw_text,
            "rust",
            line_numbers=True,
            start_line=result.start_line + 1,
        ))
        return Confirm.ask(f"[bold]Is this a {result.kind.value}?[/]", default=True)

    def classify(
        self,
        result: ScanResult,
        path: str,
        choices: list[str],
        context: ReviewContext,
    ) -> str:
        if len(choices) == 1:
            return choices[0]
        return Prompt.ask(
            f"[bold]Type of {result.name}[/]",
            choices=choices,
            default=guess_subtype(result, context),
        )
