"""
AUDITBELT Config Loader

Reads auditbelt.yaml from the audit project root and validates it.
Every folder the workflow touches is derived from here, so commands
never build paths by hand.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

CONFIG_FILE = "auditbelt.yaml"
MIRO_TOKEN_ENV = "AUDITBELT_MIRO_TOKEN"


class ConfigError(Exception):
    """Raised when the project config is missing or invalid."""


class MiroSettings(BaseModel):
    board_id: str = ""
    access_token: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.board_id and self.access_token)


class AuditConfig(BaseModel):
    project_name: str
    auditor_name: str = "auditor"
    program_path: str = ""
    program_lib: str = ""
    entrypoint_marker: str = "#[program]"
    auditor_dir: str = "auditor"
    metadata_file: str = "metadata.md"
    finding_code_prefix: str = "KS"
    notes_branch: str = ""
    miro: MiroSettings = Field(default_factory=MiroSettings)

    # Not part of the file; set by load_config()
    root: Path = Field(default=Path("."), exclude=True)

    @model_validator(mode="after")
    def _fill_defaults(self) -> "AuditConfig":
        if not self.program_path:
            self.program_path = f"programs/{self.project_name}/src"
        if not self.program_lib:
            self.program_lib = f"{self.program_path.rstrip('/')}/lib.rs"
        if not self.notes_branch:
            self.notes_branch = f"{self.auditor_name}-notes"
        return self

    # -- derived paths ------------------------------------------------------

    @property
    def program_dir(self) -> Path:
        return self.root / self.program_path

    @property
    def lib_path(self) -> Path:
        return self.root / self.program_lib

    @property
    def auditor_path(self) -> Path:
        return self.root / self.auditor_dir

    @property
    def metadata_path(self) -> Path:
        return self.auditor_path / self.metadata_file

    @property
    def findings_to_review(self) -> Path:
        return self.auditor_path / "findings" / "to_review"

    @property
    def findings_accepted(self) -> Path:
        return self.auditor_path / "findings" / "accepted"

    @property
    def findings_rejected(self) -> Path:
        return self.auditor_path / "findings" / "rejected"

    @property
    def co_to_review(self) -> Path:
        return self.auditor_path / "code_overhaul" / "to_review"

    @property
    def co_started(self) -> Path:
        return self.auditor_path / "code_overhaul" / "started"

    @property
    def co_finished(self) -> Path:
        return self.auditor_path / "code_overhaul" / "finished"

    @property
    def figures_dir(self) -> Path:
        return self.auditor_path / "figures"

    @property
    def audit_result_dir(self) -> Path:
        return self.root / "audit_result"

    @property
    def findings_result_path(self) -> Path:
        return self.audit_result_dir / "findings_result.md"

    def workflow_dirs(self) -> list[Path]:
        return [
            self.findings_to_review,
            self.findings_accepted,
            self.findings_rejected,
            self.co_to_review,
            self.co_started,
            self.co_finished,
            self.figures_dir,
        ]


def load_config(root: Path) -> AuditConfig:
    """Load and validate auditbelt.yaml under `root`."""
    root = root.resolve()
    config_path = root / CONFIG_FILE
    if not config_path.exists():
        raise ConfigError(f"No {CONFIG_FILE} found in {root}. Run `auditbelt init` first.")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    env_token = os.environ.get(MIRO_TOKEN_ENV)
    if env_token:
        data.setdefault("miro", {})
        data["miro"]["access_token"] = env_token

    try:
        config = AuditConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}:\n{e}") from e

    config.root = root
    logger.debug(f"[CONFIG] Loaded {config_path} (project={config.project_name})")
    return config


def write_default_config(root: Path, project_name: str, auditor_name: str) -> AuditConfig:
    """Create auditbelt.yaml plus the workflow folder skeleton."""
    root = root.resolve()
    config_path = root / CONFIG_FILE
    if config_path.exists():
        raise ConfigError(f"{config_path} already exists")

    config = AuditConfig(project_name=project_name, auditor_name=auditor_name)
    config.root = root
    data = config.model_dump(mode="json", exclude={"root"})
    config_path.write_text(yaml.safe_dump(data, sort_keys=False))

    for folder in config.workflow_dirs():
        folder.mkdir(parents=True, exist_ok=True)
        (folder / ".gitkeep").touch()

    logger.info(f"[CONFIG] Initialized {config_path}")
    return config
