"""Unit tests for folder template structure validation and planning"""

import pytest

from domain.document_control import (
    DocumentValidationError,
    TemplateScope,
    normalize_structure,
    plan_folders,
)
from domain.document_control.folder_templates import MAX_TEMPLATE_DEPTH, MAX_TEMPLATE_FOLDERS


PROJECT = {
    "folders": [
        {"name": "Contracts", "children": [{"name": "Signed"}, {"name": "Drafts"}]},
        {"name": "Drawings"},
    ]
}


class TestPlanFolders:

    def test_parents_come_before_children(self):
        planned = plan_folders(PROJECT)

        assert [p.name for p in planned] == ["Contracts", "Drawings", "Signed", "Drafts"]
        contracts = planned[0]
        assert contracts.parent_key is None
        assert [p.parent_key for p in planned[2:]] == [contracts.key, contracts.key]

    def test_empty_structure(self):
        assert plan_folders(None) == []
        assert plan_folders({"folders": []}) == []

    def test_names_are_trimmed(self):
        assert [p.name for p in plan_folders({"folders": [{"name": "  Minutes "}]})] == ["Minutes"]

    @pytest.mark.parametrize("name", ["", "   ", None, "a/b"])
    def test_bad_names(self, name):
        with pytest.raises(DocumentValidationError):
            plan_folders({"folders": [{"name": name}]})

    def test_duplicate_siblings_any_case(self):
        with pytest.raises(DocumentValidationError) as exc:
            plan_folders({"folders": [{"name": "Invoices"}, {"name": "INVOICES"}]})
        assert exc.value.context["name"] == "INVOICES"

    def test_same_name_under_different_parents(self):
        structure = {"folders": [
            {"name": "2025", "children": [{"name": "Invoices"}]},
            {"name": "2026", "children": [{"name": "Invoices"}]},
        ]}
        assert len(plan_folders(structure)) == 4

    def test_too_deep(self):
        node = {"name": "leaf"}
        for level in range(MAX_TEMPLATE_DEPTH):
            node = {"name": f"level-{level}", "children": [node]}

        with pytest.raises(DocumentValidationError) as exc:
            plan_folders({"folders": [node]})
        assert exc.value.context["max_depth"] == MAX_TEMPLATE_DEPTH

    def test_too_many_folders(self):
        structure = {"folders": [{"name": f"f{i}"} for i in range(MAX_TEMPLATE_FOLDERS + 1)]}

        with pytest.raises(DocumentValidationError):
            plan_folders(structure)

    @pytest.mark.parametrize("structure", [
        ["Contracts"],
        {"folders": "Contracts"},
        {"folders": ["Contracts"]},
        {"folders": [{"name": "Contracts", "children": "Signed"}]},
    ])
    def test_malformed(self, structure):
        with pytest.raises(DocumentValidationError):
            plan_folders(structure)


class TestNormalizeStructure:

    def test_keeps_shape_and_drops_extra_keys(self):
        structure = {"folders": [{"name": " Contracts ", "icon": "doc", "children": [{"name": "Signed"}]}]}

        assert normalize_structure(structure) == {
            "folders": [{"name": "Contracts", "children": [{"name": "Signed", "children": []}]}]
        }


def test_scopes():
    assert {s.value for s in TemplateScope} == {
        "company", "property", "tenant", "department", "project", "area", "personal",
    }
