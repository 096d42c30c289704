"""
AUDITBELT Metadata

Structured facts about the audited program, built from sonar results
and persisted as Markdown.
"""

from auditbelt.metadata.builder import BuildResult, MetadataBuilder
from auditbelt.metadata.entrypoints import extract_entrypoints
from auditbelt.metadata.models import (
    EntrypointMetadata,
    FunctionMetadata,
    FunctionType,
    MetadataSection,
    StructMetadata,
    StructType,
    TraitMetadata,
    TraitType,
)
from auditbelt.metadata.review import AutoReviewer, ConsoleReviewer, Reviewer, ReviewContext
from auditbelt.metadata.store import MetadataError, MetadataStore

__all__ = [
    "AutoReviewer",
    "BuildResult",
    "ConsoleReviewer",
    "EntrypointMetadata",
    "FunctionMetadata",
    "FunctionType",
    "MetadataBuilder",
    "MetadataError",
    "MetadataSection",
    "MetadataStore",
    "ReviewContext",
    "Reviewer",
    "StructMetadata",
    "StructType",
    "TraitMetadata",
    "TraitType",
    "extract_entrypoints",
]
