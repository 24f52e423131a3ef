"""Export agent session logs and convert them into readable transcripts."""

from .converter import ConversionResult, ExportNotFoundError, convert_export
from .exporter import DestinationExistsError, ExportResult, SourceNotFoundError, export_session
from .locator import (
    AmbiguousProjectError,
    InvalidIdentifierError,
    ProjectNotFoundError,
    list_projects,
    resolve_project_dir,
    validate_identifier,
)
from .models import LogRecord
from .records import parse_record, read_log_file
from .render import render_transcript

__all__ = [
    "convert_export",
    "export_session",
    "list_projects",
    "parse_record",
    "read_log_file",
    "render_transcript",
    "resolve_project_dir",
    "validate_identifier",
    "AmbiguousProjectError",
    "ConversionResult",
    "DestinationExistsError",
    "ExportNotFoundError",
    "ExportResult",
    "InvalidIdentifierError",
    "LogRecord",
    "ProjectNotFoundError",
    "SourceNotFoundError",
]
