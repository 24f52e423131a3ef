"""Pydantic models for session log records and export statistics."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field


class ToolInvocation(BaseModel):
    """A tool call requested inside an assistant turn."""

    name: str
    input: Any = None


class UserRecord(BaseModel):
    """A user (or human) turn."""

    kind: Literal["user"] = "user"
    content: str = ""
    timestamp: str | None = None


class AssistantRecord(BaseModel):
    """An assistant (or ai) turn, with any tool calls it made."""

    kind: Literal["assistant"] = "assistant"
    content: str = ""
    timestamp: str | None = None
    tool_uses: list[ToolInvocation] = Field(default_factory=list)


class ToolUseRecord(BaseModel):
    """A standalone tool invocation line."""

    kind: Literal["tool_use"] = "tool_use"
    name: str
    input: Any = None
    timestamp: str | None = None


class ToolResultRecord(BaseModel):
    """Output returned by a tool."""

    kind: Literal["tool_result"] = "tool_result"
    content: Any = None
    timestamp: str | None = None


class UnknownRecord(BaseModel):
    """Any record whose type tag is not recognized; keeps the raw object."""

    kind: Literal["unknown"] = "unknown"
    type: str = "unknown"
    raw: dict[str, Any]


LogRecord = UserRecord | AssistantRecord | ToolUseRecord | ToolResultRecord | UnknownRecord


class FileStats(BaseModel):
    """Size, line count and tool usage of one exported log file."""

    name: str
    size: int
    lines: int
    tool_uses: int = 0


class ExportStats(BaseModel):
    """Summary statistics for a whole export."""

    file_count: int
    total_size: int
    total_lines: int
    largest: list[FileStats]
    tool_uses_by_file: dict[str, int]


@dataclass(frozen=True, slots=True)
class FileFailure:
    """A single file that could not be copied or converted."""

    path: Path
    error: str
