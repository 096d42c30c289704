"""Parameter extraction from a captured function declaration."""

from __future__ import annotations

import re

from auditbelt.sonar.errors import MalformedSignatureError

_CONTEXT_RE = re.compile(r"Context<(?:\s*'[\w_]+\s*,)*\s*([A-Za-z_][\w]*)")


def signature_region(function_text: str) -> str:
    """Everything before the body brace, cut before any return-type arrow."""
    return function_text.split("{", 1)[0].split("->", 1)[0]


def extract_parameters(function_text: str) -> list[str]:
    """
    Split a function signature into parameter strings.

    Single-line signatures are tokenized on whitespace; every token holding
    a ':' starts a new parameter. Multi-line signatures take each line that
    holds a ':' as one parameter. A parameter type spanning several lines
    without its own ':' is not reassembled.
    """
    signature = signature_region(function_text)
    first_line = signature.split("\n", 1)[0]

    if ")" in first_line:
        parts = signature.split("(")
        if len(parts) < 2:
            raise MalformedSignatureError(first_line, "no parameter list")
        inner = parts[1].split(")", 1)[0]

        parameters: list[str] = []
        current: list[str] = []
        for token in inner.split():
            if ":" in token and current:
                parameters.append(" ".join(current))
                current = []
            current.append(token)
        if current:
            parameters.append(" ".join(current))
        return parameters

    return [line.strip() for line in signature.split("\n") if ":" in line]


def context_name(parameters: list[str]) -> str | None:
    """Name of the accounts struct behind a `ctx: Context<...>` parameter."""
    for parameter in parameters:
        if "Context<" not in parameter:
            continue
        match = _CONTEXT_RE.search(parameter)
        if match:
            return match.group(1)
    return None
