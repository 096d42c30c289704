"""Tests for parameter extraction."""

import pytest

from auditbelt.sonar import MalformedSignatureError, context_name, extract_parameters
from auditbelt.sonar.parameters import signature_region


class TestExtractParameters:
    """Tests for single-line and multi-line signatures."""

    def test_single_line_with_lifetimes(self):
        text = (
            "pub fn cancel_impulse<'info>(ctx: Context<'_, '_, '_, 'info, CancelImpulse<'info>>, "
            "key_index: Option<u16>) -> Result<()> {\n    Ok(())\n}"
        )
        assert extract_parameters(text) == [
            "ctx: Context<'_, '_, '_, 'info, CancelImpulse<'info>>,",
            "key_index: Option<u16>",
        ]

    def test_last_parameter_is_flushed(self):
        text = "fn f(a: u8, b: u16, c: u32) {\n}"
        assert extract_parameters(text) == ["a: u8,", "b: u16,", "c: u32"]

    def test_single_token_parameter(self):
        text = "fn f(a:u8) {\n}"
        assert extract_parameters(text) == ["a:u8"]

    def test_no_parameters(self):
        assert extract_parameters("fn f() {\n}") == []

    def test_multi_line(self):
        text = (
            "pub fn join_game(\n"
            "    ctx: Context<JoinGame>,\n"
            "    stake: u64,\n"
            ") -> Result<()> {\n"
            "    Ok(())\n"
            "}"
        )
        assert extract_parameters(text) == ["ctx: Context<JoinGame>,", "stake: u64,"]

    def test_multi_line_type_without_colon_is_not_joined(self):
        text = (
            "fn f(\n"
            "    a: Vec<\n"
            "        u8>,\n"
            ") {\n"
            "}"
        )
        assert extract_parameters(text) == ["a: Vec<"]

    def test_return_arrow_is_cut(self):
        assert signature_region("fn f(a: u8) -> Result<()> {\n}") == "fn f(a: u8) "

    def test_missing_parameter_list(self):
        with pytest.raises(MalformedSignatureError):
            extract_parameters("struct X) {\n}")


class TestContextName:
    """Tests for the accounts-struct lookup behind ctx."""

    def test_plain_context(self):
        assert context_name(["ctx: Context<CreateGame>,", "x: u8"]) == "CreateGame"

    def test_context_with_lifetimes(self):
        params = ["ctx: Context<'_, '_, '_, 'info, CancelImpulse<'info>>,"]
        assert context_name(params) == "CancelImpulse"

    def test_no_context(self):
        assert context_name(["x: u8"]) is None
