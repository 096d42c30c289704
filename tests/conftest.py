"""Shared fixtures: a small Anchor program laid out like a real audit repo."""

import pytest
from pathlib import Path

from auditbelt.config import write_default_config

LIB_RS = """use anchor_lang::prelude::*;

pub mod instructions;
pub mod state;

use instructions::*;

declare_id!("Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS");

#[program]
pub mod game {
    use super::*;

    pub fn create_game(ctx: Context<CreateGame>, max_players: u8) -> Result<()> {
        instructions::create_game::handle_create_game(ctx, max_players)
    }

    pub fn join_game(
        ctx: Context<JoinGame>,
        stake: u64,
    ) -> Result<()> {
        handle_join_game(ctx, stake)
    }
}
"""

INSTRUCTIONS_MOD_RS = """pub mod create_game;
pub mod join_game;

pub use create_game::*;
pub use join_game::*;
"""

CREATE_GAME_RS = """use anchor_lang::prelude::*;

use crate::state::Game;

#[derive(Accounts)]
pub struct CreateGame<'info> {
    #[account(mut)]
    pub authority: Signer<'info>,
    #[account(init, payer = authority, space = 8 + Game::LEN)]
    pub game: Account<'info, Game>,
    pub system_program: Program<'info, System>,
}

pub fn handle_create_game(ctx: Context<CreateGame>, max_players: u8) -> Result<()> {
    require!(max_players > 0, GameError::InvalidPlayers);
    let game = &mut ctx.accounts.game;
    game.authority = ctx.accounts.authority.key();
    game.max_players = max_players;
    Ok(())
}
"""

JOIN_GAME_RS = """use anchor_lang::prelude::*;

use crate::state::Game;

#[derive(Accounts)]
pub struct JoinGame<'info> {
    pub player: Signer<'info>,
    #[account(mut)]
    pub game: Account<'info, Game>,
}

pub fn handle_join_game(ctx: Context<JoinGame>, stake: u64) -> Result<()> {
    let game = &mut ctx.accounts.game;
    validate_stake(game, stake)?;
    game.players += 1;
    Ok(())
}

fn validate_stake(game: &Game, stake: u64) -> Result<()> {
    require!(stake >= game.min_stake, GameError::StakeTooLow);
    Ok(())
}
"""

STATE_RS = """use anchor_lang::prelude::*;

#[account]
pub struct Game {
    pub authority: Pubkey,
    pub max_players: u8,
    pub players: u8,
    pub min_stake: u64,
}

impl Game {
    pub const LEN: usize = 32 + 1 + 1 + 8 + 8;
}

pub trait Scored {
    fn score(&self) -> u64 {
        0
    }
}

impl Scored for Game {
    fn score(&self) -> u64 {
        self.players as u64
    }
}
"""

PROGRAM_FILES = {
    "lib.rs": LIB_RS,
    "instructions/mod.rs": INSTRUCTIONS_MOD_RS,
    "instructions/create_game.rs": CREATE_GAME_RS,
    "instructions/join_game.rs": JOIN_GAME_RS,
    "state.rs": STATE_RS,
}


def write_program(root: Path, name: str = "game") -> Path:
    src = root / "programs" / name / "src"
    for rel_path, content in PROGRAM_FILES.items():
        path = src / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return src


@pytest.fixture
def audit_root(tmp_path):
    """Audit project root holding the sample program and an auditbelt.yaml."""
    write_program(tmp_path)
    return tmp_path


@pytest.fixture
def config(audit_root):
    return write_default_config(audit_root, "game", "alice")
