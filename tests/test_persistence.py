"""
Tests for persistence — audit ledger.
"""

import json
from pathlib import Path

from stepwright.core.persistence.audit import AuditEntry, AuditWriter


class TestAuditWriter:
    """Tests for the NDJSON audit ledger."""

    def test_write_and_read(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path=path)

        entry = AuditEntry(
            run_id="run-1",
            installer="demo",
            status="completed",
            steps_completed=["one", "two"],
        )
        writer.write(entry)

        entries = writer.read_all()
        assert len(entries) == 1
        assert entries[0].run_id == "run-1"
        assert entries[0].steps_completed == ["one", "two"]

    def test_append_only(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path=path)
        for i in range(5):
            writer.write(AuditEntry(run_id=f"run-{i}"))

        assert writer.entry_count() == 5
        lines = path.read_text().strip().split("\n")
        assert len(lines) == 5
        assert json.loads(lines[0])["run_id"] == "run-0"

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "audit.ndjson")
        for i in range(10):
            writer.write(AuditEntry(run_id=f"run-{i}"))

        recent = writer.read_recent(3)
        assert [e.run_id for e in recent] == ["run-7", "run-8", "run-9"]

    def test_empty_ledger(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "nope.ndjson")
        assert writer.read_all() == []
        assert writer.entry_count() == 0

    def test_skips_corrupt_lines(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        path.write_text('{"run_id": "ok"}\nnot-json\n{"steps_completed": 5}\n')
        entries = AuditWriter(path=path).read_all()
        assert [e.run_id for e in entries] == ["ok"]

    def test_default_location_under_root(self, tmp_path: Path):
        writer = AuditWriter(root=tmp_path)
        writer.write(AuditEntry(run_id="r"))
        assert (tmp_path / ".stepwright" / "audit.ndjson").is_file()
