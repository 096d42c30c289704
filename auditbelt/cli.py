"""
AUDITBELT CLI

    auditbelt init PROJECT AUDITOR
    auditbelt scan FILE --kind function [--region '#[program]'] [--lenient]
    auditbelt params FILE FUNCTION
    auditbelt sonar [--yes]
    auditbelt finding create|prepare|accept|reject
    auditbelt result
    auditbelt co start|finish|list
    auditbelt figure NAME --type function
    auditbelt miro deploy ENTRYPOINT
    auditbelt miro place ITEM ENTRYPOINT

Global options go before the command: --root, --verbose, --no-commit.
Commands that change the notes refuse to run off the notes branch
(`<auditor>-notes` unless configured) while commits are on.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from auditbelt import __version__
from auditbelt.config import AuditConfig, ConfigError, load_config, write_default_config
from auditbelt.figures import SnippetOptions, read_span, render_snippet, write_snippet
from auditbelt.findings import (
    FindingError,
    accept_finding,
    create_finding,
    prepare_findings,
    reject_finding,
)
from auditbelt.git import CommitMessage, GitError, GitRepo
from auditbelt.metadata import (
    AutoReviewer,
    ConsoleReviewer,
    MetadataBuilder,
    MetadataError,
    MetadataSection,
    MetadataStore,
)
from auditbelt.miro import MiroClient, MiroError, deploy_entrypoint, place_item
from auditbelt.overhaul import (
    OverhaulError,
    finish_code_overhaul,
    list_code_overhaul,
    seed_code_overhaul,
    start_code_overhaul,
)
from auditbelt.results import build_findings_result
from auditbelt.sonar import (
    DeclarationKind,
    SonarError,
    extract_parameters,
    scan,
    scan_region,
)
from auditbelt.templates import MIRO_FRAME_PLACEHOLDER

console = Console()

app = typer.Typer(name="auditbelt", help="Smart-contract audit workflow toolkit.", no_args_is_help=True)
finding_app = typer.Typer(help="Create and triage findings.", no_args_is_help=True)
co_app = typer.Typer(help="Code-overhaul reports per entrypoint.", no_args_is_help=True)
miro_app = typer.Typer(help="Miro board deployment.", no_args_is_help=True)
app.add_typer(finding_app, name="finding")
app.add_typer(co_app, name="co")
app.add_typer(miro_app, name="miro")

HANDLED_ERRORS = (
    ConfigError,
    SonarError,
    MetadataError,
    FindingError,
    OverhaulError,
    GitError,
    MiroError,
    FileNotFoundError,
    ValueError,
)


class FigureType(str, Enum):
    FUNCTION = "function"
    STRUCT = "struct"
    TRAIT = "trait"


FIGURE_SECTIONS = {
    FigureType.FUNCTION: MetadataSection.FUNCTIONS,
    FigureType.STRUCT: MetadataSection.STRUCTS,
    FigureType.TRAIT: MetadataSection.TRAITS,
}


@dataclass
class CliState:
    root: Path
    commit: bool

    def config(self) -> AuditConfig:
        return load_config(self.root)

    def workflow_config(self) -> AuditConfig:
        """Config for a command that changes the notes; refuses to run off the notes branch."""
        config = self.config()
        if self.commit:
            GitRepo(self.root).check_branch(config.notes_branch)
        return config

    def commit_changes(self, message: str, paths: list[Path] | None = None) -> None:
        if not self.commit:
            return
        sha = GitRepo(self.root).commit(message, paths)
        if sha:
            console.print(f"[dim]Committed {sha[:8]}: {message}[/]")


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except HANDLED_ERRORS as e:
        logger.debug(f"[CLI] {type(e).__name__}: {e}")
        console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"auditbelt {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    root: Path = typer.Option(Path("."), "--root", "-r", help="Audit project root."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
    commit: bool = typer.Option(True, "--commit/--no-commit", help="Commit workflow changes with git."),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    _configure_logging(verbose)
    ctx.obj = CliState(root=root, commit=commit)


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

@app.command()
def init(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Program name (programs/<project>/src)."),
    auditor: str = typer.Argument(..., help="Auditor name."),
) -> None:
    """Write auditbelt.yaml and the auditor folder skeleton."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = write_default_config(state.root, project, auditor)
        MetadataStore(config.metadata_path).initialize()
    console.print(Panel(
        f"[bold]Project:[/] {config.project_name}\n"
        f"[bold]Auditor:[/] {config.auditor_name}\n"
        f"[bold]Program:[/] {config.program_path}\n"
        f"[bold]Metadata:[/] {config.metadata_path}",
        title="auditbelt initialized",
        border_style="green",
    ))


# ---------------------------------------------------------------------------
# Sonar
# ---------------------------------------------------------------------------

@app.command("scan")
def scan_command(
    file: Path = typer.Argument(..., help="Source file to scan."),
    kind: DeclarationKind = typer.Option(DeclarationKind.FUNCTION, "--kind", "-k", case_sensitive=False),
    region: Optional[str] = typer.Option(None, "--region", help="Only scan inside the block opened by this marker."),
    lenient: bool = typer.Option(False, "--lenient", help="Skip malformed signatures instead of failing."),
) -> None:
    """Print the declarations of one kind found in FILE."""
    with _handle_errors():
        content = file.read_text(encoding="utf-8")
        if region:
            results = scan_region(content, region, kind, strict=not lenient)
        else:
            results = scan(content, kind, strict=not lenient)

    table = Table(title=escape(f"{kind.value} in {file}"), border_style="cyan")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Lines", no_wrap=True)
    table.add_column("Indent", justify="right", no_wrap=True)
    table.add_column("Pub", no_wrap=True)
    table.add_column("First line", style="dim")
    for result in results:
        table.add_row(
            escape(result.name),
            f"{result.start_line + 1}-{result.end_line + 1}",
            str(result.indentation_width),
            "yes" if result.is_public else "",
            escape(result.first_line.strip()),
        )
    console.print(table)
    console.print(f"{len(results)} result(s)" + (f" in region {escape(region)}" if region else ""))


@app.command()
def params(
    file: Path = typer.Argument(..., help="Source file."),
    function: str = typer.Argument(..., help="Function name."),
) -> None:
    """Print the parameters of FUNCTION in FILE."""
    with _handle_errors():
        content = file.read_text(encoding="utf-8")
        matches = [r for r in scan(content, DeclarationKind.FUNCTION, strict=False) if r.name == function]
        if not matches:
            raise ValueError(f"Function {function!r} not found in {file}")
        parameters = extract_parameters(matches[0].raw_text)

    if not parameters:
        console.print(f"[yellow]{escape(function)} takes no parameters[/]")
    for parameter in parameters:
        console.print(f"  [cyan]{escape(parameter)}[/]")


@app.command()
def sonar(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Accept every result with heuristic subtypes."),
) -> None:
    """Scan the program and rebuild the metadata file."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        reviewer = AutoReviewer() if yes else ConsoleReviewer(console)
        builder = MetadataBuilder(config, reviewer=reviewer)
        console.print("\n[bold dim]🔊 [SONAR] Scanning program...[/]")
        result = builder.build()
        store = builder.save(result)
        queued = seed_code_overhaul(config, [e.name for e in result.entrypoints])
        state.commit_changes(CommitMessage.metadata_updated(), [store.path, *queued])

    table = Table(title="Metadata", border_style="magenta")
    table.add_column("Section")
    table.add_column("Records", justify="right")
    for section, count in result.summary().items():
        table.add_row(section, str(count))
    console.print(table)


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

@finding_app.command("create")
def finding_create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Finding name, e.g. 'missing owner check'."),
    informational: bool = typer.Option(False, "--informational", "-i"),
) -> None:
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        path = create_finding(config, name, informational=informational)
        state.commit_changes(CommitMessage.finding_created(path.stem), [path])
    console.print(f"[green]Created {escape(str(path))}[/]")


@finding_app.command("prepare")
def finding_prepare(ctx: typer.Context) -> None:
    """Prefix every to-review finding with its severity rank."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        paths = prepare_findings(config)
        state.commit_changes(CommitMessage.findings_prepared(), [config.findings_to_review])
    for path in paths:
        console.print(f"  [cyan]{path.name}[/]")
    console.print(f"[green]{len(paths)} finding(s) prepared[/]")


@finding_app.command("accept")
def finding_accept(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        path = accept_finding(config, name)
        state.commit_changes(
            CommitMessage.finding_accepted(path.stem), [config.findings_to_review, path]
        )
    console.print(f"[green]Accepted {path.name}[/]")


@finding_app.command("reject")
def finding_reject(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        path = reject_finding(config, name)
        state.commit_changes(
            CommitMessage.finding_rejected(path.stem), [config.findings_to_review, path]
        )
    console.print(f"[yellow]Rejected {path.name}[/]")


@app.command("result")
def result_command(ctx: typer.Context) -> None:
    """Number the accepted findings and write audit_result/findings_result.md."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        findings = build_findings_result(config)
        state.commit_changes(CommitMessage.findings_result(), [config.audit_result_dir])

    table = Table(title="Findings result", border_style="green")
    table.add_column("#", no_wrap=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Title")
    for finding in findings:
        table.add_row(finding.code, finding.severity, escape(finding.title))
    console.print(table)
    console.print(f"[green]Wrote {escape(str(config.findings_result_path))}[/]")


# ---------------------------------------------------------------------------
# Code overhaul
# ---------------------------------------------------------------------------

@co_app.command("start")
def co_start(ctx: typer.Context, entrypoint: str = typer.Argument(...)) -> None:
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        path = start_code_overhaul(config, entrypoint)
        state.commit_changes(CommitMessage.co_started(entrypoint), [config.co_to_review, path])
    console.print(f"[green]Started {escape(str(path))}[/]")


@co_app.command("finish")
def co_finish(ctx: typer.Context, entrypoint: str = typer.Argument(...)) -> None:
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        path = finish_code_overhaul(config, entrypoint)
        state.commit_changes(CommitMessage.co_finished(entrypoint), [config.co_started, path])
    console.print(f"[green]Finished {escape(str(path))}[/]")


@co_app.command("list")
def co_list(ctx: typer.Context) -> None:
    state: CliState = ctx.obj
    with _handle_errors():
        status = list_code_overhaul(state.config())

    table = Table(title="Code overhaul", border_style="cyan")
    table.add_column("Status")
    table.add_column("Entrypoints")
    for folder, names in status.items():
        table.add_row(folder, ", ".join(names) or "-")
    console.print(table)


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------

@app.command()
def figure(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Function, struct or trait name from the metadata."),
    figure_type: FigureType = typer.Option(FigureType.FUNCTION, "--type", "-t", case_sensitive=False),
    include_path: bool = typer.Option(True, "--path/--no-path", help="Prepend the source path."),
    filter_comments: bool = typer.Option(False, "--filter-comments"),
    filters: list[str] = typer.Option([], "--filter", help="Drop lines containing this text."),
    line_numbers: bool = typer.Option(True, "--line-numbers/--no-line-numbers"),
) -> None:
    """Write the snippet source for a figure into the figures folder."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.config()
        record = MetadataStore(config.metadata_path).get(FIGURE_SECTIONS[figure_type], name=name)
        lines = read_span(config.root / record.path, record.start_line, record.end_line)
        options = SnippetOptions(
            include_path=include_path,
            filter_comments=filter_comments,
            filters=list(filters),
            show_line_number=line_numbers,
        )
        snippet = render_snippet(
            lines, name, record.path, record.start_line, options, config.project_name,
        )
        path = write_snippet(snippet, config.figures_dir)
    console.print(f"[green]Wrote {escape(str(path))}[/] (first line number {snippet.offset})")


# ---------------------------------------------------------------------------
# Miro
# ---------------------------------------------------------------------------

@miro_app.command("deploy")
def miro_deploy(
    ctx: typer.Context,
    entrypoint: str = typer.Argument(...),
    validated: list[str] = typer.Option([], "--validated", help="Signer that the entrypoint validates."),
) -> None:
    """Create the entrypoint frame and its signer notes."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.workflow_config()
        record = MetadataStore(config.metadata_path).get(MetadataSection.ENTRYPOINTS, name=entrypoint)
        with MiroClient(config.miro) as client:
            frame = deploy_entrypoint(client, record, validated_signers=set(validated))
            url = client.frame_url(frame.item_id)

        changed = []
        for folder in (config.co_started, config.co_finished):
            co_file = folder / f"{entrypoint}.md"
            if co_file.exists():
                text = co_file.read_text(encoding="utf-8")
                if MIRO_FRAME_PLACEHOLDER in text:
                    co_file.write_text(text.replace(MIRO_FRAME_PLACEHOLDER, url), encoding="utf-8")
                    changed.append(co_file)
        if changed:
            state.commit_changes(CommitMessage.co_deployed(entrypoint), changed)
    console.print(f"[green]Deployed {entrypoint}:[/] {url}")


@miro_app.command("place")
def miro_place(
    ctx: typer.Context,
    item: str = typer.Argument(..., help="Board item id or its moveToWidget URL."),
    entrypoint: str = typer.Argument(..., help="Title of the frame to move it into."),
    x: float = typer.Option(300, "--x"),
    y: float = typer.Option(300, "--y"),
) -> None:
    """Move an existing board item, such as a screenshot, into an entrypoint frame."""
    state: CliState = ctx.obj
    with _handle_errors():
        config = state.config()
        with MiroClient(config.miro) as client:
            item_id = place_item(client, item, entrypoint, x=x, y=y)
    console.print(f"[green]Moved {escape(item_id)} into {escape(entrypoint)}[/]")


if __name__ == "__main__":
    app()
