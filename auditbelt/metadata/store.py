"""
AUDITBELT Metadata Store: Markdown Persistence

The metadata file is plain Markdown so auditors can read and diff it:

    # Functions

    ## create_game

    - metadata_id: 3f9a0c1d2e4b5a69
    - path: programs/game/src/lib.rs
    - start_line: 12
    - end_line: 30
    - function_type: entry_point

One H1 per section, one H2 per record, one `- field: value` line per
field. List fields are rendered as an empty field line followed by
indented `  - item` lines.
"""

from __future__ import annotations

import typing
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from auditbelt.metadata.models import RECORD_TYPES, MetadataSection


class MetadataError(Exception):
    pass


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _is_list_field(model: type[BaseModel], field_name: str) -> bool:
    annotation = model.model_fields[field_name].annotation
    return typing.get_origin(annotation) is list


def render_record(record: BaseModel) -> str:
    lines = [f"## {record.name}", ""]
    model = type(record)
    for field_name in model.model_fields:
        value = getattr(record, field_name)
        if _is_list_field(model, field_name):
            lines.append(f"- {field_name}:")
            lines.extend(f"  - {item}" for item in value)
        else:
            if hasattr(value, "value"):
                value = value.value
            lines.append(f"- {field_name}: {value}")
    return "\n".join(lines)


def render_section(section: MetadataSection, records: list[BaseModel]) -> str:
    parts = [f"# {section.value}"]
    for record in records:
        parts.append(render_record(record))
    return "\n\n".join(parts) + "\n"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _split_headers(text: str, prefix: str) -> list[tuple[str, list[str]]]:
    """Split text into (title, body lines) chunks on lines starting with `prefix`."""
    chunks: list[tuple[str, list[str]]] = []
    for line in text.splitlines():
        if line.startswith(prefix):
            chunks.append((line[len(prefix):].strip(), []))
        elif chunks:
            chunks[-1][1].append(line)
    return chunks


def parse_record(section: MetadataSection, title: str, body: list[str]) -> BaseModel:
    model = RECORD_TYPES[section]
    data: dict[str, Any] = {"name": title}
    current_list: str | None = None

    for line in body:
        if line.startswith("  - ") and current_list:
            data[current_list].append(line[4:])
            continue
        if not line.startswith("- "):
            continue
        key, _, value = line[2:].partition(":")
        key = key.strip()
        if key not in model.model_fields:
            continue
        if _is_list_field(model, key):
            data[key] = []
            current_list = key
        else:
            data[key] = value.strip()
            current_list = None

    try:
        return model(**data)
    except ValidationError as e:
        raise MetadataError(f"Could not parse {section.value} record {title!r}:\n{e}") from e


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class MetadataStore:
    """
    Reads and writes the metadata Markdown file.

    Lifecycle:
        store = MetadataStore(config.metadata_path)
        store.initialize()
        store.write(MetadataSection.FUNCTIONS, functions)
        handlers = store.find(MetadataSection.FUNCTIONS, name="handle_create_game")
    """

    def __init__(self, path: Path):
        self.path = path

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    def initialize(self, overwrite: bool = False) -> None:
        if self.exists and not overwrite:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._save({section: [] for section in MetadataSection})
        logger.info(f"[METADATA] Initialized {self.path}")

    def write(self, section: MetadataSection, records: list[BaseModel]) -> None:
        """Replace one section, keeping the others untouched."""
        if not self.exists:
            self.initialize()
        document = self._load()
        document[section] = list(records)
        self._save(document)
        logger.info(f"[METADATA] Wrote {len(records)} {section.value.lower()}")

    def read(self, section: MetadataSection) -> list[Any]:
        if not self.exists:
            raise MetadataError(f"Metadata file not found: {self.path}. Run `auditbelt sonar` first.")
        return self._load()[section]

    def find(
        self,
        section: MetadataSection,
        name: str | None = None,
        metadata_id: str | None = None,
    ) -> list[Any]:
        return [
            record for record in self.read(section)
            if (name is None or record.name == name)
            and (metadata_id is None or record.metadata_id == metadata_id)
        ]

    def get(
        self,
        section: MetadataSection,
        name: str | None = None,
        metadata_id: str | None = None,
    ) -> Any:
        """Exactly one matching record, else MetadataError."""
        matches = self.find(section, name=name, metadata_id=metadata_id)
        if not matches:
            raise MetadataError(
                f"No {section.value.lower()} record found for name={name!r} id={metadata_id!r}"
            )
        if len(matches) > 1:
            locations = ", ".join(m.location for m in matches)
            raise MetadataError(f"Ambiguous {section.value.lower()} record {name!r}: {locations}")
        return matches[0]

    # -- internal ------------------------------------------------------------

    def _load(self) -> dict[MetadataSection, list[Any]]:
        text = self.path.read_text(encoding="utf-8")
        document: dict[MetadataSection, list[Any]] = {section: [] for section in MetadataSection}
        titles = {section.value: section for section in MetadataSection}
        for title, body in _split_headers(text, "# "):
            section = titles.get(title)
            if section is None:
                logger.warning(f"[METADATA] Ignoring unknown section {title!r}")
                continue
            document[section] = [
                parse_record(section, record_title, record_body)
                for record_title, record_body in _split_headers("\n".join(body), "## ")
            ]
        return document

    def _save(self, document: dict[MetadataSection, list[Any]]) -> None:
        content = "\n".join(
            render_section(section, document.get(section, []))
            for section in MetadataSection
        )
        self.path.write_text(content, encoding="utf-8")
