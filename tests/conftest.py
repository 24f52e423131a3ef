"""Shared pytest fixtures for export and conversion tests."""

import json
import os
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Final

import pytest
from loguru import logger

STATS_JSON_SCHEMA: Final[dict[str, object]] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Export statistics",
    "type": "object",
    "required": ["file_count", "total_size", "total_lines", "largest", "tool_uses_by_file"],
    "properties": {
        "file_count": {"type": "integer", "minimum": 0},
        "total_size": {"type": "integer", "minimum": 0},
        "total_lines": {"type": "integer", "minimum": 0},
        "largest": {"type": "array", "items": {"$ref": "#/$defs/fileStats"}},
        "tool_uses_by_file": {
            "type": "object",
            "additionalProperties": {"type": "integer", "minimum": 0},
        },
    },
    "additionalProperties": False,
    "$defs": {
        "fileStats": {
            "type": "object",
            "required": ["name", "size", "lines", "tool_uses"],
            "properties": {
                "name": {"type": "string", "pattern": r"^[A-Za-z0-9._-]+\.jsonl$"},
                "size": {"type": "integer", "minimum": 0},
                "lines": {"type": "integer", "minimum": 0},
                "tool_uses": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": False,
        },
    },
}

MAIN_SESSION_LINES: Final[list[object]] = [
    {"type": "user", "content": "Add a login page", "timestamp": "2026-10-01T09:00:00Z"},
    {
        "type": "assistant",
        "content": "Delegating to agents.",
        "tool_uses": [{"name": "Task", "input": {"agent": "a1"}}],
    },
    {"type": "tool_result", "content": "agent a1 finished"},
    {"type": "assistant", "content": "Done."},
]

AGENT_A1_LINES: Final[list[object]] = [
    {"type": "user", "content": "Build the form"},
    {
        "type": "assistant",
        "content": "Reading files.",
        "tool_uses": [
            {"name": "Read", "input": {"file": "a.txt"}},
            {"name": "Glob", "input": {"pattern": "*.py"}},
        ],
    },
    {"type": "tool_use", "name": "Write", "input": {"file": "login.html"}},
]

AGENT_B2_LINES: Final[list[object]] = [
    {"type": "user", "content": "Review the form"},
    {"type": "assistant", "content": "Looks good."},
]

AGENT_C3_LINES: Final[list[object]] = [
    {"type": "user", "content": "Write tests"},
]


def write_jsonl(path: Path, lines: list[object]) -> Path:
    """Write objects (or raw strings) as one line each."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        for line in lines:
            handle.write(line if isinstance(line, str) else json.dumps(line))
            handle.write("\n")
    return path


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    """Drop sinks bound to streams that CLI tests replace and close."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture(scope="session")
def stats_json_schema() -> dict[str, object]:
    """JSON Schema describing stats.json."""
    return STATS_JSON_SCHEMA


@pytest.fixture
def jsonl_writer() -> Callable[[Path, list[object]], Path]:
    return write_jsonl


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    """A projects tree with one populated project and one empty project.

    `-home-dev-webapp` holds an older session, the current session `abc123`,
    two top-level agent logs, one nested subagent log and one agent log whose
    id is not a valid identifier.
    """
    root = tmp_path / "projects"
    webapp = root / "-home-dev-webapp"

    old = write_jsonl(webapp / "old.jsonl", [{"type": "user", "content": "stale"}])
    current = write_jsonl(webapp / "abc123.jsonl", MAIN_SESSION_LINES)
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(current, (2_000_000, 2_000_000))

    write_jsonl(webapp / "agent-b2.jsonl", AGENT_B2_LINES)
    write_jsonl(webapp / "agent-a1.jsonl", AGENT_A1_LINES)
    write_jsonl(webapp / "abc123" / "subagents" / "agent-c3.jsonl", AGENT_C3_LINES)
    write_jsonl(webapp / "agent-bad name.jsonl", AGENT_C3_LINES)

    (root / "-home-dev-api").mkdir(parents=True)
    return root


@pytest.fixture
def webapp_dir(projects_dir: Path) -> Path:
    return projects_dir / "-home-dev-webapp"
