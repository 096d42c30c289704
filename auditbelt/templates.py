"""
AUDITBELT Templates

Markdown skeletons for findings, informational observations and
code-overhaul (CO) reports. Placeholders are plain uppercase tokens so
`auditbelt co finish` can tell whether the auditor filled them in.
"""

from __future__ import annotations

import re

SIGNER_PLACEHOLDER = "COMPLETE_WITH_SIGNER_DESCRIPTION"
RESUME_PLACEHOLDER = "COMPLETE_WITH_THE_RESUME"
NOTES_PLACEHOLDER = "COMPLETE_WITH_NOTES"
MIRO_FRAME_PLACEHOLDER = "MIRO_FRAME_URL"


def _words(text: str) -> list[str]:
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text)
    return [w for w in re.split(r"[^A-Za-z0-9]+", spaced) if w]


def sentence_case(text: str) -> str:
    """`hello_how Are-you` → `Hello how are you`"""
    words = [w.lower() for w in _words(text)]
    if not words:
        return ""
    return " ".join([words[0].capitalize(), *words[1:]])


def snake_case(text: str) -> str:
    return "_".join(w.lower() for w in _words(text))


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

def finding_content(title: str) -> str:
    return f"""## {title}

**Severity:** High

**Status:** Open

| Impact | Likelihood | Difficulty |
| :----: | :--------: | :--------: |
|  High  |   Medium   |    Low     |

### Description {{-}}

Fill the description

### Impact {{-}}

Fill the impact

### Evidence {{-}}

<figure style="display:block">
    <img style="max-width:100%" src="../../figures/finding-name-1.png"/>
</figure>

Add a description of the evidence here

### Recommendation {{-}}

Add recommendations

### Affected resources {{-}}

- N/A

### Reference {{-}}

- N/A
"""


def informational_content(title: str) -> str:
    return f"""## {title}

**Severity:** Informational

**Status:** Open

### Description {{-}}

Add a description

### Evidence {{-}}

<figure style="display:block">
    <img style="max-width:100%" src="../../figures/observation-1.png"/>
</figure>

Add a description of the evidence here

### Recommendation {{-}}

Add some recommendations

### Affected resources {{-}}

- Add affected resources

### Reference {{-}}

- N/A
"""


# ---------------------------------------------------------------------------
# Code overhaul
# ---------------------------------------------------------------------------

def _bullets(items: list[str], empty: str) -> str:
    if not items:
        return f"- {empty}"
    return "\n".join(f"- {item}" for item in items)


def _code_blocks(blocks: list[str], empty: str) -> str:
    if not blocks:
        return f"- {empty}"
    return "\n\n".join(f"```rust\n{block}\n```" for block in blocks)


def code_overhaul_content(
    entrypoint: str,
    validations: list[str],
    signers: list[str],
    parameters: list[str],
    context_accounts: str = "",
) -> str:
    signer_lines = [f"{signer}: {SIGNER_PLACEHOLDER}" for signer in signers]
    accounts = f"```rust\n{context_accounts}\n```" if context_accounts else "- No context accounts found"
    return f"""# {entrypoint}

## What it does?

{RESUME_PLACEHOLDER}

## Notes

{NOTES_PLACEHOLDER}

## Signers:

{_bullets(signer_lines, "No signers found")}

## Function parameters:

{_bullets(parameters, "No function parameters")}

## Context Accounts:

{accounts}

## Validations:

{_code_blocks(validations, "No validations found")}

## Miro board frame:

- {MIRO_FRAME_PLACEHOLDER}
"""
