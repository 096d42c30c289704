"""Tests for the code-overhaul workflow and figure snippets."""

import pytest

from auditbelt.figures import (
    SnippetOptions,
    display_path,
    read_span,
    render_snippet,
    strip_comments,
    write_snippet,
)
from auditbelt.metadata import MetadataBuilder
from auditbelt.overhaul import (
    OverhaulError,
    finish_code_overhaul,
    list_code_overhaul,
    seed_code_overhaul,
    start_code_overhaul,
)
from auditbelt.templates import SIGNER_PLACEHOLDER

from conftest import JOIN_GAME_RS


def _build(config):
    builder = MetadataBuilder(config)
    result = builder.build()
    builder.save(result)
    seed_code_overhaul(config, [e.name for e in result.entrypoints])
    return config


@pytest.fixture
def built(config):
    return _build(config)


class TestCodeOverhaul:
    """Tests for seed, start, finish and list."""

    def test_seed(self, built):
        assert sorted(p.name for p in built.co_to_review.glob("*.md")) == ["create_game.md", "join_game.md"]

    def test_seed_skips_started(self, built):
        start_code_overhaul(built, "create_game")
        assert seed_code_overhaul(built, ["create_game", "join_game"]) == []
        assert not (built.co_to_review / "create_game.md").exists()

    def test_start_renders_from_metadata(self, built):
        path = start_code_overhaul(built, "create_game")

        content = path.read_text()
        assert path == built.co_started / "create_game.md"
        assert content.startswith("# create_game")
        assert f"- authority: {SIGNER_PLACEHOLDER}" in content
        assert "- max_players: u8" in content
        assert "pub struct CreateGame<'info> {" in content
        assert "require!(max_players > 0, GameError::InvalidPlayers);" in content

    def test_start_follows_handler_validations(self, built):
        content = start_code_overhaul(built, "join_game").read_text()
        assert "validate_stake(game, stake)?;" in content

    def test_start_skips_unclosed_validation_call(self, config):
        handler = config.program_dir / "instructions" / "join_game.rs"
        handler.write_text(JOIN_GAME_RS.replace(
            "    game.players += 1;\n    Ok(())\n}\n\nfn validate_stake",
            "    game.players += 1;\n    valid_players(game)\n}\n\nfn validate_stake",
        ))
        _build(config)

        path = start_code_overhaul(config, "join_game")

        assert path.exists()
        assert "validate_stake(game, stake)?;" not in path.read_text()

    def test_start_moves_out_of_to_review(self, built):
        start_code_overhaul(built, "join_game")
        assert not (built.co_to_review / "join_game.md").exists()

    def test_start_requires_to_review_entry(self, config):
        builder = MetadataBuilder(config)
        builder.save(builder.build())
        with pytest.raises(OverhaulError, match="auditbelt sonar"):
            start_code_overhaul(config, "join_game")

    def test_start_twice(self, built):
        start_code_overhaul(built, "create_game")
        with pytest.raises(OverhaulError, match="already started"):
            start_code_overhaul(built, "create_game")

    def test_start_unknown_entrypoint(self, built):
        with pytest.raises(OverhaulError):
            start_code_overhaul(built, "ghost")

    def test_finish_requires_signer_description(self, built):
        start_code_overhaul(built, "create_game")
        with pytest.raises(OverhaulError, match="signers"):
            finish_code_overhaul(built, "create_game")

    def test_finish(self, built):
        path = start_code_overhaul(built, "create_game")
        path.write_text(path.read_text().replace(SIGNER_PLACEHOLDER, "game creator, pays rent"))

        finished = finish_code_overhaul(built, "create_game")

        assert finished == built.co_finished / "create_game.md"
        assert not path.exists()

    def test_finish_not_started(self, built):
        with pytest.raises(OverhaulError, match="not started"):
            finish_code_overhaul(built, "create_game")

    def test_list(self, built):
        start_code_overhaul(built, "create_game")
        assert list_code_overhaul(built) == {
            "to_review": ["join_game"],
            "started": ["create_game"],
            "finished": [],
        }


class TestFigures:
    """Tests for snippet preparation."""

    def test_read_span(self, config):
        lines = read_span(config.lib_path, 14, 16)
        assert lines[0].strip().startswith("pub fn create_game")
        assert lines[-1] == "    }"

    def test_read_span_out_of_range(self, config):
        with pytest.raises(ValueError):
            read_span(config.lib_path, 20, 400)

    def test_strip_comments(self):
        lines = ["// header", "let a = 1; // trailing", "", "    /// doc", "let b = 2;"]
        assert strip_comments(lines) == ["let a = 1; ", "", "let b = 2;"]

    def test_display_path(self):
        assert display_path("programs/game/src/state.rs", "game") == "game/src/state.rs"

    def test_render_with_path(self):
        snippet = render_snippet(
            ["fn a() {", "}"], "fig-a", "programs/game/src/lib.rs", 10, SnippetOptions(), "game",
        )
        assert snippet.content == "// game/src/lib.rs\n\nfn a() {\n}"
        assert snippet.offset == 8

    def test_render_without_path_and_filters(self):
        options = SnippetOptions(include_path=False, filters=["msg!"], offset_to_start_line=True)
        snippet = render_snippet(
            ["fn a() {", '    msg!("hi");', "}"], "fig-a", "lib.rs", 10, options, "game",
        )
        assert snippet.content == "fn a() {\n}"
        assert snippet.offset == 10

    def test_render_without_offset(self):
        options = SnippetOptions(offset_to_start_line=False)
        snippet = render_snippet(["x"], "fig", "lib.rs", 10, options, "game")
        assert snippet.offset == 0

    def test_write_snippet(self, tmp_path):
        snippet = render_snippet(["x"], "fig", "lib.rs", 1, SnippetOptions(include_path=False), "game")
        path = write_snippet(snippet, tmp_path / "figures")
        assert path.name == "fig.rs"
        assert path.read_text() == "x\n"
