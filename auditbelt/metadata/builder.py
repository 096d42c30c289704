"""
AUDITBELT Metadata Builder

Runs the sonar over every program source file and turns the confirmed
results into metadata records:

  Structs → Functions → Traits → Entrypoints

Files are scanned one after another. The builder keeps nothing between
runs; each build rewrites every section of the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from auditbelt.config import AuditConfig
from auditbelt.indexer import SourceFile, build_index
from auditbelt.metadata.entrypoints import extract_entrypoints, find_entrypoint_results
from auditbelt.metadata.models import (
    EntrypointMetadata,
    FunctionMetadata,
    FunctionType,
    MetadataSection,
    SourceMetadata,
    StructMetadata,
    StructType,
    TraitMetadata,
    TraitType,
)
from auditbelt.metadata.review import AutoReviewer, Reviewer, ReviewContext
from auditbelt.metadata.store import MetadataStore
from auditbelt.sonar import DeclarationKind, ScanResult, SonarError, scan, split_lines

_KIND_RECORDS: dict[DeclarationKind, tuple[type[SourceMetadata], list[str]]] = {
    DeclarationKind.STRUCT: (StructMetadata, [t.value for t in StructType]),
    DeclarationKind.FUNCTION: (FunctionMetadata, [t.value for t in FunctionType]),
    DeclarationKind.TRAIT: (TraitMetadata, [TraitType.DEFINITION.value]),
    DeclarationKind.TRAIT_IMPL: (TraitMetadata, [TraitType.IMPLEMENTATION.value]),
}


@dataclass
class BuildResult:
    structs: list[StructMetadata] = field(default_factory=list)
    functions: list[FunctionMetadata] = field(default_factory=list)
    traits: list[TraitMetadata] = field(default_factory=list)
    entrypoints: list[EntrypointMetadata] = field(default_factory=list)
    # struct name → source text, for context-accounts lookups
    struct_sources: dict[str, str] = field(default_factory=dict)

    def summary(self) -> dict[str, int]:
        return {
            "structs": len(self.structs),
            "functions": len(self.functions),
            "traits": len(self.traits),
            "entrypoints": len(self.entrypoints),
        }


class MetadataBuilder:
    """
    Lifecycle:
        builder = MetadataBuilder(config, reviewer=ConsoleReviewer())
        result = builder.build()
        builder.save(result)
    """

    def __init__(self, config: AuditConfig, reviewer: Reviewer | None = None):
        self.config = config
        self.reviewer: Reviewer = reviewer or AutoReviewer()

    def build(self) -> BuildResult:
        index = build_index(self.config.program_dir)
        result = BuildResult()

        lib_content = ""
        if self.config.lib_path.is_file():
            lib_content = self.config.lib_path.read_text(encoding="utf-8")
        entrypoint_names = self._entrypoint_names(lib_content)

        for source in index.files:
            self._scan_file(source, result, entrypoint_names)

        for records in (result.structs, result.functions, result.traits):
            records.sort(key=lambda record: (record.name, record.path))

        if self.config.entrypoint_marker in lib_content:
            result.entrypoints = extract_entrypoints(
                lib_content,
                self._display_path(self.config.lib_path),
                self.config.entrypoint_marker,
                context_lookup=result.struct_sources.get,
            )
        else:
            logger.warning(
                f"[METADATA] No {self.config.entrypoint_marker} module in {self.config.lib_path}"
            )

        logger.info(f"[METADATA] Build finished: {result.summary()}")
        return result

    def save(self, result: BuildResult) -> MetadataStore:
        store = MetadataStore(self.config.metadata_path)
        store.initialize(overwrite=True)
        store.write(MetadataSection.STRUCTS, result.structs)
        store.write(MetadataSection.FUNCTIONS, result.functions)
        store.write(MetadataSection.TRAITS, result.traits)
        store.write(MetadataSection.ENTRYPOINTS, result.entrypoints)
        return store

    # -- internal ------------------------------------------------------------

    def _scan_file(self, source: SourceFile, result: BuildResult, entrypoint_names: set[str]) -> None:
        content = source.read()
        path = self._display_path(source.path)
        context = ReviewContext(split_lines(content), entrypoint_names)
        logger.debug(f"[METADATA] Reviewing {path}")

        for kind, (record_type, choices) in _KIND_RECORDS.items():
            try:
                scan_results = scan(content, kind, strict=False)
            except SonarError as e:
                logger.error(f"[METADATA] Sonar failed on {path}: {e}")
                raise
            for scan_result in scan_results:
                record = self._review(scan_result, path, record_type, choices, context)
                if record is None:
                    continue
                if kind == DeclarationKind.STRUCT:
                    result.structs.append(record)
                    result.struct_sources.setdefault(record.name, scan_result.raw_text)
                elif kind == DeclarationKind.FUNCTION:
                    result.functions.append(record)
                else:
                    result.traits.append(record)

    def _review(
        self,
        scan_result: ScanResult,
        path: str,
        record_type: type[SourceMetadata],
        choices: list[str],
        context: ReviewContext,
    ) -> SourceMetadata | None:
        if not self.reviewer.confirm(scan_result, path):
            return None
        subtype = self.reviewer.classify(scan_result, path, choices, context)
        return record_type.from_scan_result(scan_result, path, subtype)

    def _entrypoint_names(self, lib_content: str) -> set[str]:
        if not lib_content or self.config.entrypoint_marker not in lib_content:
            return set()
        return {r.name for r in find_entrypoint_results(lib_content, self.config.entrypoint_marker)}

    def _display_path(self, path) -> str:
        try:
            return path.resolve().relative_to(self.config.root.resolve()).as_posix()
        except ValueError:
            return str(path)
