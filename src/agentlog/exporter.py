"""Copy a session's main and agent logs into a fresh export directory."""

from __future__ import annotations

import re
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from loguru import logger

from .locator import InvalidIdentifierError, validate_identifier
from .models import ExportStats, FileFailure, FileStats
from .records import count_lines, count_tool_uses, read_log_file

MAIN_LOG_NAME = "main.jsonl"
INDEX_NAME = "INDEX.md"
STATS_NAME = "STATS.md"
STATS_JSON_NAME = "stats.json"

_AGENT_FILE_RE = re.compile(r"^agent-(?P<agent_id>.+)\.jsonl$")


class SourceNotFoundError(FileNotFoundError):
    """Raised when the source directory or requested session log is missing."""


class DestinationExistsError(FileExistsError):
    """Raised when the export destination already holds content."""


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a single export run."""

    destination: Path
    main_session: str | None
    files: list[FileStats]
    stats: ExportStats
    failures: list[FileFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def default_destination(output_root: Path, project: str, now: datetime) -> Path:
    """Return `<output_root>/<project>-<YYYYMMDD-HHMMSS>`."""
    return output_root / f"{project}-{now:%Y%m%d-%H%M%S}"


def find_main_log(source_dir: Path, session_id: str | None = None) -> Path | None:
    """Return the main session log.

    With an explicit `session_id` the log must exist. Otherwise the most
    recently modified non-agent `*.jsonl` is used (ties broken by name), or
    None when there is none.
    """
    if session_id is not None:
        validate_identifier(session_id, "session id")
        path = source_dir / f"{session_id}.jsonl"
        if not path.is_file():
            raise SourceNotFoundError(f"Session log '{path}' does not exist.")
        return path

    candidates = [
        path
        for path in source_dir.glob("*.jsonl")
        if path.is_file() and not _AGENT_FILE_RE.match(path.name)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda path: (path.stat().st_mtime, path.name))


def find_agent_logs(source_dir: Path, main_session: str | None = None) -> list[Path]:
    """Return agent logs in lexicographic filename order.

    Looks in `source_dir` and in `<source_dir>/<main_session>/subagents/`.
    When both hold a file of the same name the top-level one wins.
    """
    search_dirs = [source_dir]
    if main_session is not None:
        try:
            validate_identifier(main_session, "session id")
        except InvalidIdentifierError:
            logger.warning("Not searching subagents of session {session}", session=main_session)
        else:
            search_dirs.append(source_dir / main_session / "subagents")

    found: dict[str, Path] = {}
    for directory in search_dirs:
        if not directory.is_dir():
            continue
        for path in sorted(directory.glob("agent-*.jsonl")):
            match = _AGENT_FILE_RE.match(path.name)
            if match is None or not path.is_file():
                continue
            try:
                validate_identifier(match.group("agent_id"), "agent id")
            except InvalidIdentifierError as exc:
                logger.warning("Skipping agent log {path}: {error}", path=path, error=exc)
                continue
            found.setdefault(path.name, path)

    return [found[name] for name in sorted(found)]


def compute_stats(files: list[FileStats], top_n: int = 10) -> ExportStats:
    """Aggregate per-file statistics into export totals."""
    largest = sorted(files, key=lambda item: (-item.size, item.name))[:top_n]
    return ExportStats(
        file_count=len(files),
        total_size=sum(item.size for item in files),
        total_lines=sum(item.lines for item in files),
        largest=largest,
        tool_uses_by_file={item.name: item.tool_uses for item in files},
    )


def export_session(
    source_dir: Path,
    destination: Path | None = None,
    *,
    project: str,
    output_root: Path = Path("./session-exports"),
    session_id: str | None = None,
    top_n: int = 10,
    now: datetime | None = None,
) -> ExportResult:
    """Export a session's logs from `source_dir` into a new directory.

    The export is assembled in a hidden sibling directory and renamed onto
    `destination` once complete, so an interrupted run never leaves a partial
    destination behind. Files that fail to copy are reported in
    `ExportResult.failures`; the remaining files are still exported.

    Raises:
        SourceNotFoundError: If `source_dir` or the requested session is missing.
        DestinationExistsError: If `destination` exists and is not empty.
        InvalidIdentifierError: If `project` or `session_id` fails validation.
    """
    validate_identifier(project, "project identifier")
    if not source_dir.is_dir():
        raise SourceNotFoundError(f"Source directory '{source_dir}' does not exist.")

    now = now or datetime.now()
    if destination is None:
        destination = default_destination(output_root.expanduser(), project, now)
    destination = destination.expanduser()
    _ensure_destination_available(destination)

    main_log = find_main_log(source_dir, session_id)
    main_session = main_log.stem if main_log is not None else None
    agent_logs = find_agent_logs(source_dir, main_session)

    plan: list[tuple[Path, str]] = []
    if main_log is not None:
        plan.append((main_log, MAIN_LOG_NAME))
    plan.extend((path, path.name) for path in agent_logs)

    if not plan:
        logger.warning("No session or agent logs found in {path}", path=source_dir)

    destination.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{destination.name}.", dir=destination.parent))
    logger.debug("Staging export in {path}", path=staging)

    try:
        files: list[FileStats] = []
        failures: list[FileFailure] = []
        for source, name in plan:
            target = staging / name
            try:
                shutil.copy2(source, target)
                files.append(_collect_file_stats(target))
            except OSError as exc:
                logger.error("Failed to copy {path}: {error}", path=source, error=exc)
                target.unlink(missing_ok=True)
                failures.append(FileFailure(path=source, error=str(exc)))
                continue
            logger.debug("Copied {source} -> {name}", source=source, name=name)

        stats = compute_stats(files, top_n=top_n)
        (staging / INDEX_NAME).write_text(
            render_export_index(
                project=project,
                source_dir=source_dir,
                main_session=main_session,
                files=files,
                failures=failures,
                exported_at=now,
            ),
            encoding="utf-8",
        )
        (staging / STATS_NAME).write_text(render_export_stats(stats), encoding="utf-8")
        (staging / STATS_JSON_NAME).write_text(stats.model_dump_json(indent=2) + "\n", encoding="utf-8")

        _move_into_place(staging, destination)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info(
        "Exported {count} files to {path}",
        count=len(files),
        path=destination,
    )
    return ExportResult(
        destination=destination,
        main_session=main_session,
        files=files,
        stats=stats,
        failures=failures,
    )


def render_export_index(
    *,
    project: str,
    source_dir: Path,
    main_session: str | None,
    files: list[FileStats],
    failures: list[FileFailure],
    exported_at: datetime,
) -> str:
    """Render the INDEX.md listing every exported file."""
    lines = [
        f"# Session Export: {project}",
        "",
        f"- Source: `{source_dir}`",
        f"- Main session: `{main_session}`" if main_session else "- Main session: _none_",
        f"- Exported at: {exported_at.isoformat(timespec='seconds')}",
        f"- Files: {len(files)}",
        "",
        "| File | Size | Bytes | Lines |",
        "| --- | ---: | ---: | ---: |",
    ]
    for item in files:
        lines.append(
            f"| [{item.name}]({item.name}) | {format_size(item.size)} | {item.size} | {item.lines} |"
        )

    if failures:
        lines.extend(["", "## Failed files", ""])
        lines.extend(f"- `{failure.path}`: {failure.error}" for failure in failures)

    lines.extend(["", f"See [{STATS_NAME}]({STATS_NAME}) for statistics.", ""])
    return "\n".join(lines)


def render_export_stats(stats: ExportStats) -> str:
    """Render STATS.md from export statistics."""
    lines = [
        "# Export Statistics",
        "",
        f"- Files: {stats.file_count}",
        f"- Total size: {format_size(stats.total_size)} ({stats.total_size} bytes)",
        f"- Total lines: {stats.total_lines}",
        "",
        f"## Largest files (top {len(stats.largest)})",
        "",
        "| File | Size | Lines |",
        "| --- | ---: | ---: |",
    ]
    lines.extend(
        f"| {item.name} | {format_size(item.size)} | {item.lines} |" for item in stats.largest
    )
    lines.extend(
        [
            "",
            "## Tool uses per file",
            "",
            "| File | Tool uses |",
            "| --- | ---: |",
        ]
    )
    lines.extend(f"| {name} | {count} |" for name, count in stats.tool_uses_by_file.items())
    lines.append("")
    return "\n".join(lines)


def format_size(size: int) -> str:
    """Format a byte count as B/KB/MB/GB with one decimal."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{int(value)} B" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _collect_file_stats(path: Path) -> FileStats:
    size = path.stat().st_size
    lines = count_lines(path)
    try:
        tool_uses = count_tool_uses(read_log_file(path).records)
    except UnicodeDecodeError as exc:
        logger.warning("Cannot count tool uses in {path}: {error}", path=path, error=exc)
        tool_uses = 0
    return FileStats(name=path.name, size=size, lines=lines, tool_uses=tool_uses)


def _ensure_destination_available(destination: Path) -> None:
    if not destination.exists():
        return
    if not destination.is_dir() or any(destination.iterdir()):
        raise DestinationExistsError(
            f"Destination '{destination}' already exists and is not empty."
        )


def _move_into_place(staging: Path, destination: Path) -> None:
    """Rename the staging directory onto the destination."""
    _ensure_destination_available(destination)
    if destination.exists():
        destination.rmdir()
    staging.rename(destination)
