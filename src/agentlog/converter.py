"""Convert exported session logs into readable markdown transcripts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from .models import FileFailure
from .records import read_log_file
from .render import DEFAULT_MAX_TOOL_RESULT_LINES, count_turns, render_transcript

READABLE_DIR_NAME = "readable"
READABLE_INDEX_NAME = "INDEX.md"
MAIN_DOC_ID = "main"


class ExportNotFoundError(FileNotFoundError):
    """Raised when the export directory to convert does not exist."""


@dataclass(frozen=True, slots=True)
class DocumentSummary:
    """One rendered transcript and the numbers behind it."""

    source: Path
    output: Path
    doc_id: str
    lines: int
    turns: int
    records: int
    skipped: int


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting an export directory."""

    output_dir: Path
    index_path: Path
    documents: list[DocumentSummary]
    failures: list[FileFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def document_id_for(path: Path) -> str:
    """Return the transcript id: `main`, the agent id, or the file stem."""
    stem = path.stem
    if path.name == "main.jsonl":
        return MAIN_DOC_ID
    if stem.startswith("agent-") and len(stem) > len("agent-"):
        return stem[len("agent-") :]
    return stem


def iter_log_files(export_dir: Path) -> list[Path]:
    """Return the `*.jsonl` files of an export, main log first."""
    paths = sorted(path for path in export_dir.glob("*.jsonl") if path.is_file())
    return sorted(paths, key=lambda path: path.name != "main.jsonl")


def convert_file(
    source: Path,
    output_dir: Path,
    *,
    max_tool_result_lines: int = DEFAULT_MAX_TOOL_RESULT_LINES,
) -> DocumentSummary:
    """Render a single log file to `<output_dir>/<stem>.md`.

    Raises:
        OSError: If the source cannot be read or the output cannot be written.
        UnicodeDecodeError: If the source is not valid UTF-8.
    """
    parsed = read_log_file(source)
    doc_id = document_id_for(source)
    output = output_dir / f"{source.stem}.md"
    output.write_text(
        render_transcript(doc_id, parsed.records, max_tool_result_lines=max_tool_result_lines),
        encoding="utf-8",
    )
    return DocumentSummary(
        source=source,
        output=output,
        doc_id=doc_id,
        lines=parsed.total_lines,
        turns=count_turns(parsed.records),
        records=len(parsed.records),
        skipped=parsed.skipped,
    )


def convert_export(
    export_dir: Path,
    *,
    output_dir: Path | None = None,
    max_tool_result_lines: int = DEFAULT_MAX_TOOL_RESULT_LINES,
) -> ConversionResult:
    """Convert every log in `export_dir` and write a readable index.

    Input files are never modified. Files that cannot be read or written are
    collected in `ConversionResult.failures` and the remaining files are still
    converted.

    Raises:
        ExportNotFoundError: If `export_dir` is missing or not a directory.
    """
    export_dir = export_dir.expanduser()
    if not export_dir.is_dir():
        raise ExportNotFoundError(f"Export directory '{export_dir}' does not exist or is not a directory.")

    output_dir = output_dir or export_dir / READABLE_DIR_NAME
    output_dir.mkdir(parents=True, exist_ok=True)

    documents: list[DocumentSummary] = []
    failures: list[FileFailure] = []

    sources = iter_log_files(export_dir)
    if not sources:
        logger.warning("No log files found in {path}", path=export_dir)

    for source in sources:
        logger.debug("Converting log file: {path}", path=source)
        try:
            summary = convert_file(source, output_dir, max_tool_result_lines=max_tool_result_lines)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to convert {path}: {error}", path=source, error=exc)
            failures.append(FileFailure(path=source, error=str(exc)))
            continue
        if summary.skipped:
            logger.warning(
                "Skipped {count} malformed lines in {path}",
                count=summary.skipped,
                path=source,
            )
        documents.append(summary)

    index_path = output_dir / READABLE_INDEX_NAME
    index_path.write_text(render_readable_index(documents, failures), encoding="utf-8")

    return ConversionResult(
        output_dir=output_dir,
        index_path=index_path,
        documents=documents,
        failures=failures,
    )


def render_readable_index(documents: list[DocumentSummary], failures: list[FileFailure]) -> str:
    """Render the index linking every transcript with its source line count."""
    lines = [
        "# Session Transcripts",
        "",
        "| Document | Source | Lines | Turns | Skipped lines |",
        "| --- | --- | ---: | ---: | ---: |",
    ]
    for document in documents:
        lines.append(
            f"| [{document.doc_id}]({document.output.name}) | `{document.source.name}` | "
            f"{document.lines} | {document.turns} | {document.skipped} |"
        )

    if failures:
        lines.extend(["", "## Skipped files", ""])
        lines.extend(f"- `{failure.path.name}`: {failure.error}" for failure in failures)

    lines.append("")
    return "\n".join(lines)
