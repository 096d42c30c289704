"""Tests for the auditbelt command line."""

from __future__ import annotations

import shutil
import subprocess

import pytest
from loguru import logger
from typer.testing import CliRunner

from auditbelt import __version__
from auditbelt.cli import app
from auditbelt.config import load_config
from auditbelt.metadata import MetadataSection, MetadataStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger.remove()


def invoke(root, *args):
    return runner.invoke(app, ["--root", str(root), "--no-commit", *args], prog_name="auditbelt")


@pytest.fixture
def project(audit_root):
    result = invoke(audit_root, "init", "game", "alice")
    assert result.exit_code == 0, result.output
    return audit_root


@pytest.fixture
def scanned(project):
    result = invoke(project, "sonar", "--yes")
    assert result.exit_code == 0, result.output
    return project


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestInit:
    def test_init(self, project):
        config = load_config(project)
        assert config.auditor_name == "alice"
        assert config.metadata_path.exists()

    def test_init_twice(self, project):
        result = invoke(project, "init", "game", "bob")
        assert result.exit_code == 1
        assert "exists" in result.output

    def test_command_without_config(self, tmp_path):
        result = invoke(tmp_path, "finding", "prepare")
        assert result.exit_code == 1
        assert "auditbelt.yaml" in result.output


class TestScanCommands:
    """Tests for scan and params."""

    def test_scan_functions(self, audit_root):
        lib = audit_root / "programs" / "game" / "src" / "lib.rs"
        result = invoke(audit_root, "scan", str(lib), "--kind", "function")
        assert result.exit_code == 0, result.output
        assert "create_game" in result.output
        assert "2 result(s)" in result.output

    def test_scan_region(self, audit_root):
        lib = audit_root / "programs" / "game" / "src" / "lib.rs"
        result = invoke(audit_root, "scan", str(lib), "--region", "#[program]")
        assert result.exit_code == 0, result.output
        assert "in region #[program]" in result.output

    def test_scan_missing_region(self, audit_root):
        lib = audit_root / "programs" / "game" / "src" / "lib.rs"
        result = invoke(audit_root, "scan", str(lib), "--region", "#[interface]")
        assert result.exit_code == 1
        assert "#[interface]" in result.output

    def test_scan_structs(self, audit_root):
        state = audit_root / "programs" / "game" / "src" / "state.rs"
        result = invoke(audit_root, "scan", str(state), "--kind", "struct")
        assert result.exit_code == 0, result.output
        assert "Game" in result.output

    def test_scan_unbalanced(self, tmp_path):
        broken = tmp_path / "broken.rs"
        broken.write_text("fn broken() {\n")
        result = invoke(tmp_path, "scan", str(broken))
        assert result.exit_code == 1
        assert "closing" in result.output

    def test_scan_lenient(self, tmp_path):
        source = tmp_path / "odd.rs"
        source.write_text("fn (\n}\nfn ok() {\n}\n")
        assert invoke(tmp_path, "scan", str(source)).exit_code == 1
        result = invoke(tmp_path, "scan", str(source), "--lenient")
        assert result.exit_code == 0
        assert "1 result(s)" in result.output

    def test_params(self, audit_root):
        lib = audit_root / "programs" / "game" / "src" / "lib.rs"
        result = invoke(audit_root, "params", str(lib), "join_game")
        assert result.exit_code == 0, result.output
        assert "stake: u64," in result.output

    def test_params_unknown_function(self, audit_root):
        lib = audit_root / "programs" / "game" / "src" / "lib.rs"
        result = invoke(audit_root, "params", str(lib), "ghost")
        assert result.exit_code == 1


class TestWorkflow:
    """Tests for sonar, findings, code overhaul and figures."""

    def test_sonar(self, scanned):
        store = MetadataStore(load_config(scanned).metadata_path)
        assert {e.name for e in store.read(MetadataSection.ENTRYPOINTS)} == {"create_game", "join_game"}
        to_review = load_config(scanned).co_to_review
        assert sorted(p.stem for p in to_review.glob("*.md")) == ["create_game", "join_game"]

    def test_findings(self, project):
        assert invoke(project, "finding", "create", "missing signer check").exit_code == 0
        assert invoke(project, "finding", "create", "naming", "--informational").exit_code == 0

        result = invoke(project, "finding", "prepare")
        assert result.exit_code == 0, result.output
        assert "2 finding(s) prepared" in result.output

        assert invoke(project, "finding", "accept", "missing signer check").exit_code == 0
        assert invoke(project, "finding", "reject", "naming").exit_code == 0
        config = load_config(project)
        assert (config.findings_accepted / "1-missing_signer_check.md").exists()
        assert (config.findings_rejected / "4-naming.md").exists()

        result = invoke(project, "result")
        assert result.exit_code == 0, result.output
        assert "KS-01" in result.output
        assert "## KS-01: Missing signer check" in config.findings_result_path.read_text()

    def test_code_overhaul(self, scanned):
        result = invoke(scanned, "co", "start", "join_game")
        assert result.exit_code == 0, result.output

        result = invoke(scanned, "co", "finish", "join_game")
        assert result.exit_code == 1

        result = invoke(scanned, "co", "list")
        assert result.exit_code == 0
        assert "join_game" in result.output

    def test_co_without_metadata(self, project):
        result = invoke(project, "co", "start", "join_game")
        assert result.exit_code == 1

    def test_figure(self, scanned):
        result = invoke(scanned, "figure", "create_game", "--type", "function")
        assert result.exit_code == 0, result.output
        snippet = load_config(scanned).figures_dir / "create_game.rs"
        assert snippet.read_text().startswith("// game/src/lib.rs\n\n    pub fn create_game(")

    def test_figure_unknown(self, scanned):
        result = invoke(scanned, "figure", "Ghost", "--type", "struct")
        assert result.exit_code == 1

    def test_miro_not_configured(self, scanned):
        result = invoke(scanned, "miro", "deploy", "join_game")
        assert result.exit_code == 1
        assert "configured" in result.output

    def test_miro_place_not_configured(self, scanned):
        result = invoke(scanned, "miro", "place", "42", "join_game")
        assert result.exit_code == 1


def _git_repo(path, branch):
    for args in (["init", "-q"], ["checkout", "-q", "-b", branch], ["config", "user.email", "a@example.com"],
                 ["config", "user.name", "A"], ["config", "commit.gpgsign", "false"]):
        subprocess.run(["git", *args], cwd=path, check=True)


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestCommits:
    def test_sonar_commits_metadata(self, project):
        _git_repo(project, "alice-notes")

        result = runner.invoke(app, ["--root", str(project), "sonar", "--yes"])
        assert result.exit_code == 0, result.output

        log = subprocess.run(
            ["git", "log", "-1", "--format=%s"], cwd=project, capture_output=True, text=True,
        ).stdout.strip()
        assert log == "sonar: metadata updated"
        tracked = subprocess.run(
            ["git", "ls-files"], cwd=project, capture_output=True, text=True,
        ).stdout
        assert "auditor/code_overhaul/to_review/join_game.md" in tracked

    def test_refuses_off_notes_branch(self, project):
        _git_repo(project, "develop")

        result = runner.invoke(app, ["--root", str(project), "finding", "create", "overflow"])

        assert result.exit_code == 1
        assert "alice-notes" in result.output
        assert not (load_config(project).findings_to_review / "overflow.md").exists()

    def test_no_commit_skips_branch_check(self, project):
        _git_repo(project, "develop")
        assert invoke(project, "finding", "create", "overflow").exit_code == 0
