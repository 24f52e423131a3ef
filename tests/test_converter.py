"""Tests for converting exported logs into readable transcripts."""

from pathlib import Path

import pytest

from agentlog.converter import (
    ExportNotFoundError,
    convert_export,
    document_id_for,
    iter_log_files,
)
from agentlog.exporter import export_session

MIXED_LINES: list[object] = [
    {"type": "user", "content": "hello"},
    {"type": "assistant", "content": "hi", "tool_uses": [{"name": "Read", "input": {"file": "a.txt"}}]},
    {"type": "tool_use", "name": "Read", "input": {"file": "a.txt"}},
    {"type": "tool_result", "content": "contents of a"},
    '{"type": "user", "content": "trunc',
    {"type": "human", "content": "again"},
    "[1, 2]",
    "",
    {"type": "ai", "content": "bye"},
    {"type": "summary", "summary": "greeting"},
]


@pytest.fixture
def export_dir(tmp_path: Path, jsonl_writer) -> Path:
    root = tmp_path / "export"
    jsonl_writer(root / "main.jsonl", MIXED_LINES)
    jsonl_writer(root / "agent-a1.jsonl", [{"type": "user", "content": "sub task"}])
    jsonl_writer(root / "agent-b2.jsonl", [])
    (root / "INDEX.md").write_text("# Session Export\n", encoding="utf-8")
    return root


class TestDocumentId:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("main.jsonl", "main"), ("agent-a1.jsonl", "a1"), ("abc123.jsonl", "abc123"), ("agent-.jsonl", "agent-")],
    )
    def test_document_id_for(self, name: str, expected: str):
        assert document_id_for(Path(name)) == expected

    def test_main_log_listed_first(self, export_dir: Path):
        names = [path.name for path in iter_log_files(export_dir)]
        assert names == ["main.jsonl", "agent-a1.jsonl", "agent-b2.jsonl"]


class TestConvertExport:
    def test_converts_every_log(self, export_dir: Path):
        result = convert_export(export_dir)

        assert result.ok
        assert result.output_dir == export_dir / "readable"
        assert [document.output.name for document in result.documents] == [
            "main.md",
            "agent-a1.md",
            "agent-b2.md",
        ]
        assert (export_dir / "readable" / "agent-a1.md").read_text(encoding="utf-8").startswith(
            "# Agent Transcript: a1\n"
        )

    def test_turn_count_matches_user_and_assistant_records(self, export_dir: Path):
        result = convert_export(export_dir)

        main = result.documents[0]
        text = main.output.read_text(encoding="utf-8")
        assert main.turns == 4
        assert main.skipped == 2
        assert main.lines == len(MIXED_LINES)
        assert text.count("## Turn ") == 4
        assert "## Turn 1 - User\n\nhello" in text
        assert "## Turn 3 - User\n\nagain" in text
        assert "## Turn 4 - Assistant\n\nbye" in text
        assert "trunc" not in text

    def test_renders_every_record_kind(self, export_dir: Path):
        convert_export(export_dir)

        text = (export_dir / "readable" / "main.md").read_text(encoding="utf-8")

        assert "### Tool Use: Read\n\n```json\n{\n  \"file\": \"a.txt\"\n}\n```" in text
        assert "### Tool Result\n\n```\ncontents of a\n```" in text
        assert "### Unknown Type: summary" in text

    def test_empty_log_renders_header_only(self, export_dir: Path):
        convert_export(export_dir)

        text = (export_dir / "readable" / "agent-b2.md").read_text(encoding="utf-8")

        assert text == "# Agent Transcript: b2\n\n"

    def test_index_links_documents(self, export_dir: Path):
        result = convert_export(export_dir)

        index = result.index_path.read_text(encoding="utf-8")

        assert result.index_path == export_dir / "readable" / "INDEX.md"
        assert "| [main](main.md) | `main.jsonl` | 10 | 4 | 2 |" in index
        assert "| [a1](agent-a1.md) | `agent-a1.jsonl` | 1 | 1 | 0 |" in index
        assert "| [b2](agent-b2.md) | `agent-b2.jsonl` | 0 | 0 | 0 |" in index
        assert "Skipped files" not in index

    def test_conversion_is_idempotent(self, export_dir: Path):
        convert_export(export_dir)
        first = {path.name: path.read_bytes() for path in (export_dir / "readable").iterdir()}

        convert_export(export_dir)
        second = {path.name: path.read_bytes() for path in (export_dir / "readable").iterdir()}

        assert second == first

    def test_inputs_are_not_modified(self, export_dir: Path):
        before = {path.name: path.read_bytes() for path in export_dir.iterdir() if path.is_file()}

        convert_export(export_dir)

        after = {path.name: path.read_bytes() for path in export_dir.iterdir() if path.is_file()}
        assert after == before

    def test_unreadable_file_is_skipped(self, export_dir: Path):
        (export_dir / "agent-bad.jsonl").write_bytes(b"\xff\xfe\xfa\n")

        result = convert_export(export_dir)

        assert not result.ok
        assert [failure.path.name for failure in result.failures] == ["agent-bad.jsonl"]
        assert [document.source.name for document in result.documents] == [
            "main.jsonl",
            "agent-a1.jsonl",
            "agent-b2.jsonl",
        ]
        assert not (export_dir / "readable" / "agent-bad.md").exists()
        index = result.index_path.read_text(encoding="utf-8")
        assert "## Skipped files" in index
        assert "`agent-bad.jsonl`" in index

    def test_custom_truncation(self, tmp_path: Path, jsonl_writer):
        root = tmp_path / "export"
        content = "\n".join(f"row {number}" for number in range(20))
        jsonl_writer(root / "main.jsonl", [{"type": "tool_result", "content": content}])

        convert_export(root, max_tool_result_lines=5)

        text = (root / "readable" / "main.md").read_text(encoding="utf-8")
        assert "row 4\n```" in text
        assert "row 5" not in text
        assert "*[Truncated: showing 5 of 20 lines]*" in text

    def test_empty_export_directory(self, tmp_path: Path):
        root = tmp_path / "export"
        root.mkdir()

        result = convert_export(root)

        assert result.ok
        assert result.documents == []
        assert result.index_path.is_file()

    def test_missing_export_directory(self, tmp_path: Path):
        with pytest.raises(ExportNotFoundError):
            convert_export(tmp_path / "missing")
        assert not (tmp_path / "missing").exists()

    def test_converts_an_export(self, webapp_dir: Path, tmp_path: Path):
        exported = export_session(webapp_dir, tmp_path / "export", project="webapp")

        result = convert_export(exported.destination)

        assert result.ok
        assert [document.doc_id for document in result.documents] == ["main", "a1", "b2", "c3"]
        assert sum(document.turns for document in result.documents) == 3 + 2 + 2 + 1
