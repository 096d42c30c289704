"""
AUDITBELT Metadata Records

Persisted form of sonar results. Line numbers here are one-based (what an
editor shows); ScanResult line indices are zero-based.
"""

from __future__ import annotations

import secrets
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from auditbelt.sonar import ScanResult


def new_metadata_id() -> str:
    return secrets.token_hex(8)


class MetadataSection(str, Enum):
    STRUCTS = "Structs"
    FUNCTIONS = "Functions"
    TRAITS = "Traits"
    ENTRYPOINTS = "Entrypoints"


class FunctionType(str, Enum):
    ENTRY_POINT = "entry_point"
    HANDLER = "handler"
    VALIDATOR = "validator"
    HELPER = "helper"
    OTHER = "other"


class StructType(str, Enum):
    CONTEXT_ACCOUNTS = "context_accounts"
    ACCOUNT = "account"
    INPUT = "input"
    OTHER = "other"


class TraitType(str, Enum):
    DEFINITION = "definition"
    IMPLEMENTATION = "implementation"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class SourceMetadata(BaseModel):
    """Fields shared by every record pointing at a span of a source file."""
    section: ClassVar[MetadataSection]
    subtype_field: ClassVar[str]

    metadata_id: str = Field(default_factory=new_metadata_id)
    name: str
    path: str
    start_line: int
    end_line: int

    @classmethod
    def from_scan_result(cls, result: ScanResult, path: str, subtype: str, **extra):
        return cls(
            name=result.name,
            path=path,
            start_line=result.start_line + 1,
            end_line=result.end_line + 1,
            **{cls.subtype_field: subtype},
            **extra,
        )

    @property
    def subtype(self) -> str:
        return getattr(self, self.subtype_field).value

    @property
    def location(self) -> str:
        return f"{self.path}:{self.start_line}"


class FunctionMetadata(SourceMetadata):
    section: ClassVar[MetadataSection] = MetadataSection.FUNCTIONS
    subtype_field: ClassVar[str] = "function_type"

    function_type: FunctionType = FunctionType.OTHER


class StructMetadata(SourceMetadata):
    section: ClassVar[MetadataSection] = MetadataSection.STRUCTS
    subtype_field: ClassVar[str] = "struct_type"

    struct_type: StructType = StructType.OTHER


class TraitMetadata(SourceMetadata):
    section: ClassVar[MetadataSection] = MetadataSection.TRAITS
    subtype_field: ClassVar[str] = "trait_type"

    trait_type: TraitType = TraitType.DEFINITION


class EntrypointMetadata(BaseModel):
    section: ClassVar[MetadataSection] = MetadataSection.ENTRYPOINTS

    metadata_id: str = Field(default_factory=new_metadata_id)
    name: str
    path: str
    start_line: int
    end_line: int
    handler_function: str = ""
    context_name: str = ""
    parameters: list[str] = Field(default_factory=list)
    signers: list[str] = Field(default_factory=list)
    mut_accounts: list[str] = Field(default_factory=list)

    @property
    def location(self) -> str:
        return f"{self.path}:{self.start_line}"


RECORD_TYPES: dict[MetadataSection, type[BaseModel]] = {
    MetadataSection.STRUCTS: StructMetadata,
    MetadataSection.FUNCTIONS: FunctionMetadata,
    MetadataSection.TRAITS: TraitMetadata,
    MetadataSection.ENTRYPOINTS: EntrypointMetadata,
}
