"""Tests for ASTNodeEditExecutor and its splice helpers."""

import pytest

from conftest import HEADER_TSX
from intelligent_modifier.agents.exceptions import ResolutionFailure, SynthesisFailure
from intelligent_modifier.agents.executors.ast_node_edit import (
    ASTNodeEditExecutor,
    add_required_imports,
    drop_nested_targets,
    splice_node,
)
from intelligent_modifier.agents.scope_classifier import build_node_index
from intelligent_modifier.models.scope_models import TargetedNodesScope, TargetNode
from intelligent_modifier.models.synthesis_models import NodeEdit, NodeEditBatch, RequiredImport

HEADER_PATH = "src/components/Header.tsx"
BLUE_BUTTON = '<button className="bg-blue-600 text-white px-4 py-2 rounded">Sign Up</button>'


@pytest.fixture
def header_index():
    return build_node_index({HEADER_PATH: HEADER_TSX})


def _target(index, tag: str, rank: int = 0) -> TargetNode:
    node_id = next(node_id for node_id, info in index.nodes.items() if info.tag_name == tag)
    return index.target(node_id, rank)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestSpliceHelpers:
    """Tests for splice_node, add_required_imports and drop_nested_targets."""

    def test_splice_replaces_only_the_node(self, header_index):
        updated = splice_node(HEADER_TSX, _target(header_index, "button"), BLUE_BUTTON)
        assert f"        {BLUE_BUTTON}\n" in updated
        assert "bg-primary" not in updated
        assert updated.replace(BLUE_BUTTON, "") == HEADER_TSX.replace(
            '<button className="bg-primary text-white px-4 py-2 rounded">Sign Up</button>', ""
        )

    def test_splice_reindents_multiline_code(self, header_index):
        new_code = "<button\n  className=\"btn\"\n>\n  Go\n</button>"
        updated = splice_node(HEADER_TSX, _target(header_index, "button"), new_code)
        assert '\n          className="btn"\n' in updated
        assert "\n        </button>\n" in updated

    def test_splice_stale_target_raises(self, header_index):
        target = _target(header_index, "button")
        with pytest.raises(ResolutionFailure):
            splice_node("const x = 1;\n", target, BLUE_BUTTON)

    def test_splice_rejects_changed_node_text(self, header_index):
        target = _target(header_index, "button")
        with pytest.raises(ResolutionFailure, match="changed since it was resolved"):
            splice_node(HEADER_TSX, target, BLUE_BUTTON, expected_text="<button>Help</button>")

    def test_add_required_imports(self):
        updated = add_required_imports(HEADER_TSX, HEADER_PATH, [
            RequiredImport(source="lucide-react", names=["Star", "Heart"]),
            RequiredImport(source="react-router-dom", names=["Link"]),
        ])
        assert "import { Link } from 'react-router-dom';\nimport { Star, Heart } from \"lucide-react\";\n" in updated
        assert updated.count("react-router-dom") == 1

    def test_add_required_imports_noop_when_bound(self):
        assert add_required_imports(HEADER_TSX, HEADER_PATH, [
            RequiredImport(source="react", default="React"),
        ]) == HEADER_TSX

    def test_drop_nested_targets(self, header_index):
        nav = _target(header_index, "nav", rank=0)
        button = _target(header_index, "button", rank=1)
        assert drop_nested_targets([nav, button]) == [nav]


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class TestASTNodeEditExecutor:
    """Tests for the TARGETED_NODES executor."""

    def test_edits_target_node(self, make_context, react_project, mock_synthesis, header_index):
        target = _target(header_index, "button")
        mock_synthesis.propose_node_edits.return_value = NodeEditBatch(edits=[
            NodeEdit(node_id=target.node_id, new_code=BLUE_BUTTON),
        ])
        scope = TargetedNodesScope(reasoning="button", target_nodes=[target])

        result = ASTNodeEditExecutor(mock_synthesis).execute(scope, make_context("make the button blue"))

        assert result.success
        assert result.files_modified == [HEADER_PATH]
        assert result.details["applied_nodes"] == [target.node_id]
        assert result.details["changed_lines"] == 2
        on_disk = (react_project / HEADER_PATH).read_text()
        assert "bg-blue-600" in on_disk
        assert "bg-primary" not in on_disk
        snippets = mock_synthesis.propose_node_edits.call_args[0][3]
        assert snippets == [(target.node_id, '<button className="bg-primary text-white px-4 py-2 rounded">Sign Up</button>')]

    def test_sibling_insert_does_not_shift_later_target(
        self, make_context, react_project, mock_synthesis, header_index
    ):
        link = _target(header_index, "Link", rank=0)
        button = _target(header_index, "button", rank=1)
        mock_synthesis.propose_node_edits.return_value = NodeEditBatch(edits=[
            NodeEdit(
                node_id=link.node_id,
                new_code='<Link to="/" className="text-xl font-bold">Acme</Link>\n<button>Help</button>',
            ),
            NodeEdit(node_id=button.node_id, new_code=BLUE_BUTTON),
        ])
        scope = TargetedNodesScope(target_nodes=[link, button])

        result = ASTNodeEditExecutor(mock_synthesis).execute(scope, make_context("add a help button"))

        assert result.success
        assert sorted(result.details["applied_nodes"]) == sorted([link.node_id, button.node_id])
        on_disk = (react_project / HEADER_PATH).read_text()
        assert "        <button>Help</button>\n" in on_disk
        assert on_disk.count(BLUE_BUTTON) == 1
        assert "bg-primary" not in on_disk

    def test_adds_imports_after_splicing(self, make_context, react_project, mock_synthesis, header_index):
        target = _target(header_index, "button")
        mock_synthesis.propose_node_edits.return_value = NodeEditBatch(edits=[
            NodeEdit(
                node_id=target.node_id,
                new_code="<button className=\"btn\"><Star /> Sign Up</button>",
                required_imports=[RequiredImport(source="lucide-react", names=["Star"])],
            ),
        ])
        scope = TargetedNodesScope(target_nodes=[target])
        result = ASTNodeEditExecutor(mock_synthesis).execute(scope, make_context("add a star icon"))

        assert result.success
        on_disk = (react_project / HEADER_PATH).read_text()
        assert 'import { Star } from "lucide-react";' in on_disk
        assert "<Star /> Sign Up" in on_disk

    def test_unparseable_edit_is_skipped(self, make_context, react_project, mock_synthesis, header_index):
        target = _target(header_index, "button")
        mock_synthesis.propose_node_edits.return_value = NodeEditBatch(edits=[
            NodeEdit(node_id=target.node_id, new_code="<button>broken"),
        ])
        result = ASTNodeEditExecutor(mock_synthesis).execute(
            TargetedNodesScope(target_nodes=[target]), make_context("break it")
        )
        assert not result.success
        assert result.details["skipped_nodes"][target.node_id] == "edit would leave the file unparseable"
        assert (react_project / HEADER_PATH).read_text() == HEADER_TSX

    def test_stale_target_is_skipped_without_synthesis_call(self, make_context, mock_synthesis):
        stale = TargetNode(
            file_path=HEADER_PATH,
            node_kind="jsx_element",
            structural_path=[99],
            tag_name="button",
            node_id="n7",
        )
        result = ASTNodeEditExecutor(mock_synthesis).execute(
            TargetedNodesScope(target_nodes=[stale]), make_context("edit")
        )
        assert not result.success
        assert "breaks at depth" in result.details["skipped_nodes"]["n7"]
        mock_synthesis.propose_node_edits.assert_not_called()

    def test_synthesis_failure_is_reported(self, make_context, mock_synthesis, header_index):
        target = _target(header_index, "button")
        mock_synthesis.propose_node_edits.side_effect = SynthesisFailure("timeout")
        result = ASTNodeEditExecutor(mock_synthesis).execute(
            TargetedNodesScope(target_nodes=[target]), make_context("edit")
        )
        assert not result.success
        assert result.details["skipped_nodes"][target.node_id].startswith("synthesis failed")

    def test_no_targets(self, make_context, mock_synthesis):
        result = ASTNodeEditExecutor(mock_synthesis).execute(TargetedNodesScope(), make_context("edit"))
        assert not result.success
        assert result.reasoning == "No target nodes to edit"

    def test_without_synthesis(self, make_context, header_index):
        scope = TargetedNodesScope(target_nodes=[_target(header_index, "button")])
        result = ASTNodeEditExecutor().execute(scope, make_context("edit"))
        assert not result.success
