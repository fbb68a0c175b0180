"""
Unit tests for MondayTransformer
"""

import json
from datetime import date

import pytest

from platform_integrations.errors import TransformationError
from platform_integrations.platforms.models import UNASSIGNED, JiraPayload, MondayPayload
from platform_integrations.transformers.monday import (
    MondayTransformer,
    canonical_priority,
    canonical_status,
    column_role,
    person_references,
)


def column(title, column_type, text="", value=None):
    return {
        "id": title.lower().replace(" ", "_"),
        "text": text,
        "type": column_type,
        "value": json.dumps(value) if value is not None else None,
        "column": {"id": title.lower(), "title": title, "type": column_type},
    }


def people(text, *ids):
    return column(
        "Owner",
        "people",
        text,
        {"personsAndTeams": [{"id": person_id, "kind": "person"} for person_id in ids]},
    )


def make_item(item_id, status="Working on it", group="topics", extra=None, **fields):
    item = {
        "id": item_id,
        "name": f"Item {item_id}",
        "state": "active",
        "group": {"id": group, "title": group.title()},
        "column_values": [column("Status", "status", status)] + (extra or []),
    }
    item.update(fields)
    return item


def make_board(items):
    return {
        "id": "42",
        "name": "Sprint Board",
        "description": "Team board",
        "state": "active",
        "board_kind": "public",
        "owners": [{"id": 1, "name": "Olive Owner", "email": "olive@example.com"}],
        "subscribers": [{"id": 2, "name": "Sam Subscriber"}],
        "groups": [
            {"id": "topics", "title": "Topics", "color": "#037f4c"},
            {"id": "done", "title": "Done", "color": "#00c875"},
        ],
        "columns": [{"id": "status", "title": "Status", "type": "status"}],
        "items": items,
    }


def transform(items):
    return MondayTransformer().transform(MondayPayload(boards=[make_board(items)]))[0]


class TestMondayMappings:
    """Tests for status, priority and column classification."""

    @pytest.mark.parametrize("label,expected", [
        ("Working on it", "In Progress"),
        ("Stuck", "Blocked"),
        ("Done", "Done"),
        ("Not Started", "To Do"),
        ("Pending", "To Do"),
        ("Waiting for review", "In Review"),
        ("", "To Do"),
        (None, "To Do"),
        ("Incomplete", "To Do"),
        ("Not Done", "To Do"),
        ("Unresolved", "To Do"),
        ("Waiting", "Waiting"),
    ])
    def test_status(self, label, expected):
        assert canonical_status(label) == expected

    @pytest.mark.parametrize("status", ["To Do", "In Progress", "In Review", "Done", "Blocked"])
    def test_canonical_status_values_map_to_themselves(self, status):
        assert canonical_status(status) == status

    @pytest.mark.parametrize("label,expected", [
        ("Critical ⚠️", "Critical"),
        ("Urgent", "Critical"),
        ("High", "High"),
        ("Low", "Low"),
        ("", "Medium"),
    ])
    def test_priority(self, label, expected):
        assert canonical_priority(label) == expected

    def test_column_roles(self):
        assert column_role(column("Priority", "status")) == "priority"
        assert column_role(column("Status", "color")) == "status"
        assert column_role(column("Owner", "people")) == "person"
        assert column_role(column("Due", "text")) == "date"
        assert column_role(column("Labels", "dropdown")) == "tags"
        assert column_role(column("Story Points", "numbers")) == "points"
        assert column_role(column("Budget", "numbers")) is None

    def test_person_references(self):
        refs = person_references(people("Alice, Bob", 567, 568))
        assert refs == [("567", "Alice"), ("568", "Bob")]

    def test_person_references_without_value(self):
        assert person_references(column("Owner", "people", "Alice")) == []


class TestMondayTransformer:
    """Tests for MondayTransformer.transform."""

    def test_board_fields(self):
        project = transform([make_item("1"), make_item("2", "Done", group="done")])

        assert project.id == "42"
        assert project.name == "Sprint Board"
        assert project.platform == "monday"
        assert project.description == "Team board"
        assert project.metric("Groups").value == 2
        specific = project.platform_specific["monday"]
        assert specific["boardId"] == "42"
        assert specific["boardKind"] == "public"
        assert [(g["id"], g["itemCount"]) for g in specific["groups"]] == [("topics", 1), ("done", 1)]
        assert specific["columns"] == [{"id": "status", "title": "Status", "type": "status"}]

    def test_item_fields(self):
        item = make_item("1", "Stuck", extra=[
            column("Priority", "status", "High"),
            people("Alice", 567),
            column("Due date", "date", "2024-06-01"),
            column("Tags", "tags", "frontend, ux"),
            column("Story Points", "numbers", "8"),
        ])

        task = transform([item]).tasks[0]

        assert task.id == "1"
        assert task.title == "Item 1"
        assert task.status == "Blocked"
        assert task.priority == "High"
        assert task.assignee.name == "Alice"
        assert task.due_date == date(2024, 6, 1)
        assert task.tags == ["frontend", "ux"]
        assert task.story_points == 8.0

    def test_team_roles(self):
        project = transform([make_item("1", extra=[people("Alice", 567)])])

        assert [(m.id, m.role) for m in project.team] == [
            ("1", "Owner"),
            ("2", "Member"),
            ("567", "Member"),
        ]
        assert project.metric("Team Size").value == 3

    def test_unknown_person_is_unassigned(self):
        project = transform([make_item("1", extra=[people("", 999)])])

        assert project.tasks[0].assignee is UNASSIGNED
        assert project.metric("Unassigned Tasks").value == 1

    def test_deleted_and_archived_items_skipped(self):
        items = [make_item("1"), make_item("2", state="deleted"), make_item("3", state="archived")]

        project = transform(items)

        assert [t.id for t in project.tasks] == ["1"]

    def test_item_without_id_skipped(self):
        project = transform([make_item("1"), make_item("")])
        assert [t.id for t in project.tasks] == ["1"]

    def test_completion_metrics(self):
        items = [make_item(str(n), "Done") for n in range(3)] + [make_item("9", "Working on it")]

        project = transform(items)

        assert project.metric("Completion Rate").value == 75
        assert project.metric("In Progress").value == 1

    def test_wrong_payload_type(self):
        with pytest.raises(TransformationError, match="Expected a Monday.com payload"):
            MondayTransformer().transform(JiraPayload(domain="acme.atlassian.net"))
