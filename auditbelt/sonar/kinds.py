"""
AUDITBELT Sonar: Token Filter Registry

Every declaration kind the scanner understands is described by one row
of KIND_TABLE. The scanner never branches on the kind itself, it only
reads the row.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DeclarationKind(str, Enum):
    FUNCTION = "function"
    STRUCT = "struct"
    MODULE = "module"
    CONDITIONAL = "conditional"
    VALIDATION_CALL = "validation_call"
    ACCOUNT_CONTEXT = "account_context"
    TRAIT = "trait"
    TRAIT_IMPL = "trait_impl"


@dataclass(frozen=True)
class TokenFilters:
    open: frozenset[str]
    confirm: frozenset[str]
    close: frozenset[str]


@dataclass(frozen=True)
class KindConfig:
    filters: TokenFilters
    named: bool = False
    # close candidate only has to appear somewhere in the line
    close_contains: bool = False
    # a close token on the opening line ends the declaration there
    single_line_close: bool = False
    # name is `Trait for Type`, read around the `for` token
    impl_name: bool = False


def _filters(open_: tuple[str, ...], confirm: tuple[str, ...], close: tuple[str, ...]) -> TokenFilters:
    return TokenFilters(frozenset(open_), frozenset(confirm), frozenset(close))


KIND_TABLE: dict[DeclarationKind, KindConfig] = {
    DeclarationKind.FUNCTION: KindConfig(
        _filters(("fn", "pub fn"), ("(",), ("}",)), named=True,
    ),
    DeclarationKind.STRUCT: KindConfig(
        _filters(("struct", "pub struct"), ("{",), ("}",)), named=True,
    ),
    DeclarationKind.MODULE: KindConfig(
        _filters(("mod", "pub mod"), ("{",), ("}",)), named=True,
    ),
    DeclarationKind.CONDITIONAL: KindConfig(
        _filters(("if",), ("{",), ("}",)),
    ),
    DeclarationKind.VALIDATION_CALL: KindConfig(
        _filters(("require", "valid", "assert", "verify"), ("(",), (");", ")?;")),
        single_line_close=True,
    ),
    DeclarationKind.ACCOUNT_CONTEXT: KindConfig(
        _filters(("#[account",), ("(",), ("pub",)), close_contains=True,
    ),
    DeclarationKind.TRAIT: KindConfig(
        _filters(("trait", "pub trait"), ("{",), ("}",)), named=True,
    ),
    DeclarationKind.TRAIT_IMPL: KindConfig(
        _filters(("impl",), (" for ",), ("}",)), named=True, single_line_close=True, impl_name=True,
    ),
}


def filters(kind: DeclarationKind) -> TokenFilters:
    """Return the (open, confirm, close) token sets for a kind."""
    return KIND_TABLE[kind].filters


def kind_config(kind: DeclarationKind) -> KindConfig:
    return KIND_TABLE[kind]
