"""Tests for templates and the findings workflow."""

import pytest

from auditbelt.config import AuditConfig
from auditbelt.findings import (
    FindingError,
    accept_finding,
    create_finding,
    prepare_findings,
    read_severity,
    reject_finding,
)
from auditbelt.templates import (
    SIGNER_PLACEHOLDER,
    code_overhaul_content,
    finding_content,
    sentence_case,
    snake_case,
)


class TestTemplates:
    """Tests for name helpers and Markdown templates."""

    def test_sentence_case(self):
        assert sentence_case("hello_how Are-you") == "Hello how are you"
        assert sentence_case("missingOwnerCheck") == "Missing owner check"
        assert sentence_case("") == ""

    def test_snake_case(self):
        assert snake_case("Missing owner-check") == "missing_owner_check"

    def test_finding_has_severity(self):
        assert "**Severity:** High" in finding_content("Overflow")

    def test_code_overhaul_content(self):
        content = code_overhaul_content(
            entrypoint="join_game",
            validations=["require!(a);"],
            signers=["player"],
            parameters=["stake: u64,"],
            context_accounts="pub struct JoinGame {}",
        )
        assert content.startswith("# join_game")
        assert f"- player: {SIGNER_PLACEHOLDER}" in content
        assert "- stake: u64," in content
        assert "```rust\nrequire!(a);\n```" in content

    def test_code_overhaul_content_empty(self):
        content = code_overhaul_content("noop", [], [], [])
        assert "- No signers found" in content
        assert "- No validations found" in content
        assert SIGNER_PLACEHOLDER not in content


def _set_severity(path, severity):
    text = path.read_text()
    path.write_text(text.replace("**Severity:** High", f"**Severity:** {severity}"))


class TestFindings:
    """Tests for create, prepare, accept and reject."""

    def test_create(self, config):
        path = create_finding(config, "Missing owner check")
        assert path == config.findings_to_review / "missing_owner_check.md"
        assert path.read_text().startswith("## Missing owner check")

    def test_create_informational(self, config):
        path = create_finding(config, "unused import", informational=True)
        assert read_severity(path) == "informational"

    def test_create_duplicate(self, config):
        create_finding(config, "overflow")
        with pytest.raises(FindingError):
            create_finding(config, "Overflow")

    def test_create_duplicate_after_prepare(self, config):
        create_finding(config, "overflow")
        prepare_findings(config)
        with pytest.raises(FindingError):
            create_finding(config, "overflow")

    def test_create_without_project(self, tmp_path):
        config = AuditConfig(project_name="x", root=tmp_path)
        with pytest.raises(FindingError):
            create_finding(config, "x")

    def test_prepare_orders_by_severity(self, config):
        low = create_finding(config, "low one")
        high = create_finding(config, "high one")
        info = create_finding(config, "info one", informational=True)
        _set_severity(low, "Low")

        prepared = prepare_findings(config)

        names = sorted(p.name for p in prepared)
        assert names == ["1-high_one.md", "3-low_one.md", "4-info_one.md"]
        assert not high.exists()
        assert not info.exists()

    def test_prepare_replaces_prefix(self, config):
        path = create_finding(config, "reentrancy")
        prepare_findings(config)
        prepared = config.findings_to_review / "1-reentrancy.md"
        _set_severity(prepared, "Medium")

        [renamed] = prepare_findings(config)

        assert renamed.name == "2-reentrancy.md"
        assert not path.exists()

    def test_prepare_unknown_severity(self, config):
        path = create_finding(config, "odd")
        _set_severity(path, "Critical")
        with pytest.raises(FindingError, match="critical"):
            prepare_findings(config)

    def test_accept_and_reject(self, config):
        create_finding(config, "kept")
        create_finding(config, "dropped")
        prepare_findings(config)

        accepted = accept_finding(config, "kept")
        rejected = reject_finding(config, "dropped")

        assert accepted == config.findings_accepted / "1-kept.md"
        assert rejected == config.findings_rejected / "1-dropped.md"
        assert accepted.exists() and rejected.exists()
        assert [p.name for p in config.findings_to_review.glob("*.md")] == []

    def test_accept_missing(self, config):
        with pytest.raises(FindingError):
            accept_finding(config, "ghost")
