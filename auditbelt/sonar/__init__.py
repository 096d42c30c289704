"""
AUDITBELT Sonar

Lexical declaration scanner for Rust-like contract sources.
"""

from auditbelt.sonar.errors import (
    MalformedSignatureError,
    RegionMarkerNotFoundError,
    SonarError,
    UnbalancedDeclarationError,
)
from auditbelt.sonar.kinds import KIND_TABLE, DeclarationKind, TokenFilters, filters
from auditbelt.sonar.parameters import context_name, extract_parameters
from auditbelt.sonar.results import NO_NAME, ScanResult
from auditbelt.sonar.scanner import Sonar, region_bounds, scan, scan_region, split_lines

__all__ = [
    "DeclarationKind",
    "KIND_TABLE",
    "MalformedSignatureError",
    "NO_NAME",
    "RegionMarkerNotFoundError",
    "ScanResult",
    "Sonar",
    "SonarError",
    "TokenFilters",
    "UnbalancedDeclarationError",
    "context_name",
    "extract_parameters",
    "filters",
    "region_bounds",
    "scan",
    "scan_region",
    "split_lines",
]
