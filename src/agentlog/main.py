"""CLI entrypoint for exporting and converting agent session logs."""

from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from .config import Settings
from .converter import convert_export
from .exporter import INDEX_NAME, export_session, format_size
from .locator import InvalidIdentifierError, ProjectNotFoundError, list_projects, resolve_project_dir
from .logging import configure_logging

app = typer.Typer(
    name="agentlog",
    help="Export agent session logs and convert them into readable transcripts.",
    no_args_is_help=True,
)

VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose logging."),
]
ProjectsDirOption = Annotated[
    Path | None,
    typer.Option(
        "--projects-dir",
        "-p",
        help="Directory holding one log directory per project (default: AGENTLOG_PROJECTS_DIR or ~/.claude/projects).",
    ),
]


@app.command()
def export(
    project: Annotated[
        str,
        typer.Argument(help="Project identifier: a directory name or its last path segment."),
    ],
    destination: Annotated[
        Path | None,
        typer.Argument(help="Destination directory (default: <output-root>/<project>-<timestamp>)."),
    ] = None,
    session: Annotated[
        str | None,
        typer.Option("--session", "-s", help="Session id to export instead of the most recent one."),
    ] = None,
    projects_dir: ProjectsDirOption = None,
    output_root: Annotated[
        Path | None,
        typer.Option("--output-root", "-o", help="Parent directory for timestamped exports."),
    ] = None,
    verbose: VerboseOption = False,
) -> None:
    """Copy a project's main session log and agent logs into a new export directory."""
    configure_logging(verbose)
    settings = _load_settings()
    base_dir = projects_dir or settings.projects_dir

    try:
        source_dir = resolve_project_dir(project, base_dir)
    except InvalidIdentifierError as exc:
        raise typer.BadParameter(str(exc), param_hint="PROJECT")
    except ProjectNotFoundError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        _echo_candidates(exc.candidates, base_dir)
        raise typer.Exit(code=1)

    try:
        result = export_session(
            source_dir,
            destination,
            project=project,
            output_root=output_root or settings.output_root,
            session_id=session,
            top_n=settings.top_n,
        )
    except InvalidIdentifierError as exc:
        raise typer.BadParameter(str(exc), param_hint="--session")
    except OSError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=1)

    stats = result.stats
    typer.echo(f"Exported {stats.file_count} files to {result.destination}")
    typer.echo(
        f"Total size: {format_size(stats.total_size)} ({stats.total_size} bytes), "
        f"total lines: {stats.total_lines}"
    )
    typer.echo(f"Index: {result.destination / INDEX_NAME}")

    if not result.ok:
        typer.echo(f"Failed to copy {len(result.failures)} files:")
        for failure in result.failures:
            typer.echo(f"  {failure.path}: {failure.error}")
        raise typer.Exit(code=1)


@app.command()
def convert(
    export_dir: Annotated[
        Path,
        typer.Argument(help="Export directory containing *.jsonl logs."),
    ],
    max_lines: Annotated[
        int | None,
        typer.Option(
            "--max-lines",
            "-n",
            min=1,
            help="Maximum tool result lines to render (default: AGENTLOG_TOOL_RESULT_MAX_LINES or 100).",
        ),
    ] = None,
    verbose: VerboseOption = False,
) -> None:
    """Render every log in an export directory as a markdown transcript."""
    configure_logging(verbose)
    settings = _load_settings()

    try:
        result = convert_export(
            export_dir,
            max_tool_result_lines=max_lines or settings.tool_result_max_lines,
        )
    except OSError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=1)

    if not result.documents and not result.failures:
        typer.echo("No log files found to convert.")

    for document in result.documents:
        typer.echo(
            f"converted {document.source.name} -> {result.output_dir.name}/{document.output.name} "
            f"({document.turns} turns)"
        )
    for failure in result.failures:
        typer.echo(f"FAILED {failure.path.name}: {failure.error}")

    typer.echo(f"Index: {result.index_path}")

    if not result.ok:
        typer.echo(f"Skipped {len(result.failures)} files.")
        raise typer.Exit(code=1)


@app.command()
def projects(projects_dir: ProjectsDirOption = None) -> None:
    """List project identifiers that can be exported."""
    base_dir = projects_dir or _load_settings().projects_dir
    names = list_projects(base_dir.expanduser())
    if not names:
        typer.echo(f"No projects found under {base_dir}.", err=True)
        return
    for name in names:
        typer.echo(name)


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        typer.echo(f"ERROR: invalid configuration: {exc}", err=True)
        raise typer.Exit(code=1)


def _echo_candidates(candidates: list[str], base_dir: Path) -> None:
    if not candidates:
        typer.echo(f"No projects found under {base_dir}.", err=True)
        return
    typer.echo("Available projects:", err=True)
    for name in candidates:
        typer.echo(f"  {name}", err=True)


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
