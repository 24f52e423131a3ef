"""Parsing of line-delimited session log files into typed records."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from .models import (
    AssistantRecord,
    LogRecord,
    ToolInvocation,
    ToolResultRecord,
    ToolUseRecord,
    UnknownRecord,
    UserRecord,
)

_KIND_ALIASES: dict[str, str] = {
    "user": "user",
    "human": "user",
    "assistant": "assistant",
    "ai": "assistant",
    "tool_use": "tool_use",
    "tool_result": "tool_result",
}


@dataclass(frozen=True)
class ParsedLog:
    """Records read from one log file plus line bookkeeping."""

    records: list[LogRecord]
    total_lines: int
    skipped: int


def parse_record(data: dict[str, Any]) -> LogRecord:
    """Classify one decoded log object by its `type` tag.

    Known kinds whose fields do not validate fall back to `UnknownRecord`, so
    every decoded object yields exactly one record.
    """
    record_type = data.get("type")
    if record_type is None:
        record_type = "unknown"
    kind = _KIND_ALIASES.get(record_type) if isinstance(record_type, str) else None
    timestamp = _extract_timestamp(data)

    try:
        match kind:
            case "user":
                return UserRecord(
                    content=content_to_text(_extract_content(data)),
                    timestamp=timestamp,
                )
            case "assistant":
                content = _extract_content(data)
                return AssistantRecord(
                    content=content_to_text(content),
                    timestamp=timestamp,
                    tool_uses=_extract_tool_uses(data, content),
                )
            case "tool_use":
                return ToolUseRecord(
                    name=data.get("name"),
                    input=data.get("input"),
                    timestamp=timestamp,
                )
            case "tool_result":
                return ToolResultRecord(content=_extract_content(data), timestamp=timestamp)
    except ValidationError as exc:
        logger.debug("Record of type {type} failed validation: {error}", type=record_type, error=exc)

    return UnknownRecord(type=str(record_type), raw=data)


def read_log_file(path: Path) -> ParsedLog:
    """Parse a JSONL log file, skipping empty and malformed lines.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    records: list[LogRecord] = []
    total_lines = 0
    skipped = 0

    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            total_lines = line_number
            line = line.strip()
            if not line:
                continue

            try:
                data = json.loads(line)
            except (json.JSONDecodeError, RecursionError) as exc:
                logger.warning(
                    "Skipping malformed JSON in {file}:{line}: {error}",
                    file=path,
                    line=line_number,
                    error=exc,
                )
                skipped += 1
                continue

            if not isinstance(data, dict):
                logger.warning(
                    "Skipping non-object record in {file}:{line}",
                    file=path,
                    line=line_number,
                )
                skipped += 1
                continue

            records.append(parse_record(data))

    return ParsedLog(records=records, total_lines=total_lines, skipped=skipped)


def count_lines(path: Path) -> int:
    """Count lines the way `wc -l` would, plus a trailing unterminated line."""
    with path.open("rb") as handle:
        return sum(1 for _ in handle)


def count_tool_uses(records: list[LogRecord]) -> int:
    """Count tool invocations: standalone tool_use lines and assistant tool calls."""
    count = 0
    for record in records:
        if isinstance(record, ToolUseRecord):
            count += 1
        elif isinstance(record, AssistantRecord):
            count += len(record.tool_uses)
    return count


def content_to_text(content: Any) -> str:
    """Flatten string or block-list content into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for chunk in content:
            if isinstance(chunk, str):
                parts.append(chunk)
            elif isinstance(chunk, dict):
                chunk_type = chunk.get("type")
                if chunk_type == "text" and isinstance(chunk.get("text"), str):
                    parts.append(chunk["text"])
                elif chunk_type == "tool_result":
                    parts.append(content_to_text(chunk.get("content")))
        return "\n".join(part for part in parts if part)
    if isinstance(content, dict):
        return content_to_text([content]) or json.dumps(content, ensure_ascii=False)
    return str(content)


def _extract_content(data: dict[str, Any]) -> Any:
    if "content" in data:
        return data["content"]
    # Nested message shape: {"type": "user", "message": {"role": ..., "content": ...}}
    message = data.get("message")
    if isinstance(message, dict):
        return message.get("content")
    return None


def _extract_timestamp(data: dict[str, Any]) -> str | None:
    timestamp = data.get("timestamp")
    if timestamp is None:
        return None
    return str(timestamp)


def _extract_tool_uses(data: dict[str, Any], content: Any) -> list[ToolInvocation]:
    """Collect tool calls from `tool_uses` and from tool_use content blocks."""
    candidates: list[Any] = []
    tool_uses = data.get("tool_uses")
    if isinstance(tool_uses, list):
        candidates.extend(tool_uses)
    if isinstance(content, list):
        candidates.extend(
            chunk for chunk in content if isinstance(chunk, dict) and chunk.get("type") == "tool_use"
        )

    invocations: list[ToolInvocation] = []
    for item in candidates:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            continue
        invocations.append(ToolInvocation(name=item["name"], input=item.get("input")))
    return invocations
