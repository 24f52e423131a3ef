"""Markdown rendering of parsed session records."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from .models import (
    AssistantRecord,
    LogRecord,
    ToolInvocation,
    ToolResultRecord,
    ToolUseRecord,
    UnknownRecord,
    UserRecord,
)
from .records import content_to_text

DEFAULT_MAX_TOOL_RESULT_LINES = 100


def render_transcript(
    doc_id: str,
    records: Iterable[LogRecord],
    *,
    max_tool_result_lines: int = DEFAULT_MAX_TOOL_RESULT_LINES,
) -> str:
    """Render a record sequence as a markdown transcript.

    Turn numbers are shared across the whole document and advance only on
    user and assistant records. The output carries no timestamps of its own,
    so rendering the same records twice yields identical text.
    """
    parts: list[str] = [f"# Agent Transcript: {doc_id}\n\n"]
    turn = 0

    for record in records:
        match record:
            case UserRecord():
                turn += 1
                parts.append(_render_turn(turn, "User", record.content, record.timestamp))
            case AssistantRecord():
                turn += 1
                parts.append(
                    _render_turn(
                        turn,
                        "Assistant",
                        record.content,
                        record.timestamp,
                        tool_uses=record.tool_uses,
                    )
                )
            case ToolUseRecord():
                parts.append(_render_tool_use(record))
            case ToolResultRecord():
                parts.append(_render_tool_result(record, max_tool_result_lines))
            case UnknownRecord():
                parts.append(_render_unknown(record))

    return "".join(parts)


def count_turns(records: Iterable[LogRecord]) -> int:
    """Number of user and assistant records, i.e. the last turn number rendered."""
    return sum(1 for record in records if isinstance(record, (UserRecord, AssistantRecord)))


def truncate_lines(text: str, max_lines: int) -> tuple[list[str], int]:
    """Return at most `max_lines` lines of `text` and the original line count.

    Only "\n" separates lines; a trailing newline does not start another one.
    """
    if not text:
        return [], 0
    lines = text.removesuffix("\n").split("\n")
    return lines[:max_lines], len(lines)


def _render_turn(
    turn: int,
    role: str,
    content: str,
    timestamp: str | None,
    *,
    tool_uses: list[ToolInvocation] | None = None,
) -> str:
    parts = [f"## Turn {turn} - {role}\n\n"]
    if timestamp:
        parts.append(f"*{timestamp}*\n\n")
    if content:
        parts.append(f"{content.rstrip()}\n\n")
    if tool_uses:
        parts.append("**Tool calls:**\n\n")
        for invocation in tool_uses:
            encoded = json.dumps(invocation.input, ensure_ascii=False)
            parts.append(f"- {_inline_code(invocation.name)}: {_inline_code(encoded)}\n")
        parts.append("\n")
    parts.append("---\n\n")
    return "".join(parts)


def _render_tool_use(record: ToolUseRecord) -> str:
    payload = json.dumps(record.input, indent=2, ensure_ascii=False)
    return f"### Tool Use: {record.name}\n\n{_fenced(payload, 'json')}\n\n"


def _render_tool_result(record: ToolResultRecord, max_lines: int) -> str:
    text = _tool_result_text(record.content)
    shown, total = truncate_lines(text, max_lines)
    body = "\n".join(shown)
    parts = [f"### Tool Result\n\n{_fenced(body)}\n\n"]
    if total > max_lines:
        parts.append(f"*[Truncated: showing {max_lines} of {total} lines]*\n\n")
    return "".join(parts)


def _render_unknown(record: UnknownRecord) -> str:
    payload = json.dumps(record.raw, indent=2, ensure_ascii=False)
    return f"### Unknown Type: {record.type}\n\n{_fenced(payload, 'json')}\n\n"


def _tool_result_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        text = content_to_text(content)
        if text:
            return text
    return json.dumps(content, indent=2, ensure_ascii=False)


def _inline_code(text: str) -> str:
    """Wrap `text` in a backtick run longer than any run inside it."""
    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    ticks = "`" * (longest + 1)
    if text.startswith("`") or text.endswith("`"):
        text = f" {text} "
    return f"{ticks}{text}{ticks}"


def _fenced(body: str, language: str = "") -> str:
    """Wrap `body` in a code fence longer than any backtick run inside it."""
    fence = "```"
    while fence in body:
        fence += "`"
    return f"{fence}{language}\n{body}\n{fence}"
