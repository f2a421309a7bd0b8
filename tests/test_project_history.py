"""Tests for FileProjectHistory."""

import json

import pytest

from intelligent_modifier.agents.exceptions import IOFailure
from intelligent_modifier.agents.project_history import FileProjectHistory


@pytest.fixture
def records_dir(tmp_path):
    project = tmp_path / "records" / "proj-1"
    (project / "generations").mkdir(parents=True)
    (project / "design.json").write_text(json.dumps({"description": "Minimal dark SaaS theme"}))
    (project / "generations" / "001.json").write_text(json.dumps({
        "files": {"src/App.tsx": "v1", "src/index.css": "body {}"},
    }))
    (project / "generations" / "002.json").write_text(json.dumps({"files": {"src/App.tsx": "v2"}}))
    return tmp_path / "records"


class TestFileProjectHistory:
    """Tests for reading generation records."""

    def test_design_description(self, records_dir):
        assert FileProjectHistory(records_dir).get_design_description("proj-1") == "Minimal dark SaaS theme"

    def test_unknown_project(self, records_dir):
        history = FileProjectHistory(records_dir)
        assert history.get_design_description("missing") is None
        assert history.prior_generated_files("missing") == {}

    def test_later_generations_win(self, records_dir):
        files = FileProjectHistory(records_dir).prior_generated_files("proj-1")
        assert files == {"src/App.tsx": "v2", "src/index.css": "body {}"}

    def test_malformed_generation_record_is_ignored(self, records_dir):
        (records_dir / "proj-1" / "generations" / "003.json").write_text(json.dumps(["not", "a", "dict"]))
        files = FileProjectHistory(records_dir).prior_generated_files("proj-1")
        assert files["src/App.tsx"] == "v2"

    def test_unreadable_record_raises(self, records_dir):
        (records_dir / "proj-1" / "design.json").write_text("{oops")
        with pytest.raises(IOFailure):
            FileProjectHistory(records_dir).get_design_description("proj-1")

    def test_path_escape_is_rejected(self, records_dir):
        with pytest.raises(IOFailure, match="Invalid project id"):
            FileProjectHistory(records_dir).get_design_description("../../etc")
