"""
Monday.com Transformer

Maps Monday.com boards and items onto ``ProjectData``. Boards have no
fixed schema, so the meaning of each column is inferred from its type
and title:

    column                                       used as
    -------------------------------------------  ------------
    title contains "priority"                    priority
    type color/status, or title "status"         status
    type person/multiple-person/people           assignee
    type date, or title contains "due"           due date
    type tags, or title contains "tag"/"label"   tags
    type numbers with "point"/"estimate" title   story points

Status mapping (label text): not started/incomplete/not done/unresolved
-> To Do, stuck/blocked/on hold -> Blocked,
review/qa/approval -> In Review, done/complete/finished/closed -> Done,
to do/pending/backlog/new -> To Do, working on it/progress/
doing/started -> In Progress, empty -> To Do; other labels kept as is.

Priority mapping: critical/urgent -> Critical, high -> High, low -> Low,
everything else -> Medium.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from platform_integrations.errors import TransformationError
from platform_integrations.platforms.models import (
    Metric,
    MondayPayload,
    Platform,
    ProjectData,
    Task,
    TaskPriority,
    TaskStatus,
    TeamMember,
)

from .common import (
    Vocabulary,
    as_text,
    dedupe_team,
    first,
    match_vocabulary,
    parse_date,
    resolve_assignee,
    summarize_tasks,
    to_float,
)

logger = logging.getLogger(__name__)

STATUS_VOCABULARY: Vocabulary = (
    (("not started", "incomplete", "not done", "unresolved"), TaskStatus.TODO.value),
    (("stuck", "blocked", "on hold"), TaskStatus.BLOCKED.value),
    (("review", "qa", "approval"), TaskStatus.IN_REVIEW.value),
    (("done", "complete", "finished", "closed"), TaskStatus.DONE.value),
    (("to do", "todo", "pending", "backlog", "new"), TaskStatus.TODO.value),
    (("working on it", "progress", "doing", "started"), TaskStatus.IN_PROGRESS.value),
)

PRIORITY_VOCABULARY: Vocabulary = (
    (("critical", "urgent"), TaskPriority.CRITICAL.value),
    (("high",), TaskPriority.HIGH.value),
    (("low",), TaskPriority.LOW.value),
    (("medium",), TaskPriority.MEDIUM.value),
)

PERSON_TYPES = {"person", "multiple-person", "people"}
SKIPPED_ITEM_STATES = {"deleted", "archived"}


def canonical_status(label: Any) -> str:
    text = as_text(label)
    if not text:
        return TaskStatus.TODO.value
    return match_vocabulary(text, STATUS_VOCABULARY) or text


def canonical_priority(label: Any) -> str:
    return match_vocabulary(as_text(label), PRIORITY_VOCABULARY) or TaskPriority.MEDIUM.value


def column_role(column_value: Dict[str, Any]) -> Optional[str]:
    """Classify a column value by its column's type and title."""
    column = column_value.get("column") or {}
    title = as_text(column.get("title")).lower()
    column_type = as_text(column_value.get("type") or column.get("type")).lower()

    if "priority" in title:
        return "priority"
    if column_type in ("color", "status") or "status" in title:
        return "status"
    if column_type in PERSON_TYPES:
        return "person"
    if column_type == "date" or "due" in title:
        return "date"
    if column_type == "tags" or "tag" in title or "label" in title:
        return "tags"
    if column_type == "numbers" and ("point" in title or "estimate" in title):
        return "points"
    return None


def _load_value(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return value if isinstance(value, dict) else {}


def person_references(column_value: Dict[str, Any]) -> List[Tuple[str, Optional[str]]]:
    """(id, display name) pairs of the persons assigned in a people column."""
    value = _load_value(column_value.get("value"))
    persons = [
        p for p in value.get("personsAndTeams") or []
        if isinstance(p, dict) and p.get("kind", "person") == "person" and p.get("id") is not None
    ]
    names = [n.strip() for n in as_text(column_value.get("text")).split(",") if n.strip()]
    return [
        (as_text(person["id"]), names[index] if index < len(names) else None)
        for index, person in enumerate(persons)
    ]


def _user_member(user: Dict[str, Any], role: str) -> Optional[TeamMember]:
    member_id = as_text(user.get("id"))
    if not member_id:
        return None
    return TeamMember(
        id=member_id,
        name=as_text(user.get("name")) or "Unknown",
        email=user.get("email"),
        role=role,
        avatar=first(user, "photo_thumb_small", "photo_thumb"),
    )


class MondayTransformer:
    """Monday.com payload -> list of ``ProjectData``."""

    platform = Platform.MONDAY.value

    def transform(self, payload: MondayPayload) -> List[ProjectData]:
        if not isinstance(payload, MondayPayload):
            raise TransformationError(
                f"Expected a Monday.com payload, got {type(payload).__name__}"
            )

        projects = []
        for board in payload.boards:
            try:
                projects.append(self._transform_board(board))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping Monday.com board {board.get('id') if isinstance(board, dict) else board}: {e}")
        return projects

    def _transform_board(self, board: Dict[str, Any]) -> ProjectData:
        items = [
            item for item in board.get("items") or []
            if isinstance(item, dict) and as_text(item.get("state")).lower() not in SKIPPED_ITEM_STATES
        ]
        team = self._build_team(board, items)

        tasks = []
        for item in items:
            try:
                tasks.append(self._transform_item(item, team))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping Monday.com item {item.get('id')}: {e}")

        groups = board.get("groups") or []
        group_counts: Dict[str, int] = {}
        for item in items:
            group_id = as_text((item.get("group") or {}).get("id"))
            if group_id:
                group_counts[group_id] = group_counts.get(group_id, 0) + 1

        metrics = summarize_tasks(tasks, team) + [Metric("Groups", len(groups))]

        return ProjectData(
            id=as_text(board.get("id")),
            name=as_text(board.get("name")),
            platform=self.platform,
            description=as_text(board.get("description")),
            status=as_text(board.get("state")) or "active",
            tasks=tasks,
            team=team,
            metrics=metrics,
            platform_specific={
                "monday": {
                    "boardId": as_text(board.get("id")),
                    "boardKind": board.get("board_kind"),
                    "groups": [
                        {
                            "id": group.get("id"),
                            "title": group.get("title"),
                            "color": group.get("color"),
                            "itemCount": group_counts.get(as_text(group.get("id")), 0),
                        }
                        for group in groups
                    ],
                    "columns": [
                        {"id": c.get("id"), "title": c.get("title"), "type": c.get("type")}
                        for c in board.get("columns") or []
                    ],
                }
            },
        )

    def _build_team(self, board: Dict[str, Any], items: List[Dict[str, Any]]) -> List[TeamMember]:
        members = []
        for owner in board.get("owners") or []:
            member = _user_member(owner, "Owner")
            if member:
                members.append(member)
        for subscriber in board.get("subscribers") or []:
            member = _user_member(subscriber, "Member")
            if member:
                members.append(member)
        for item in items:
            for column_value in item.get("column_values") or []:
                if column_role(column_value) != "person":
                    continue
                for person_id, name in person_references(column_value):
                    if name:
                        members.append(TeamMember(id=person_id, name=name, role="Member"))
        return dedupe_team(members)

    def _transform_item(self, item: Dict[str, Any], team: List[TeamMember]) -> Task:
        item_id = as_text(item.get("id"))
        if not item_id:
            raise ValueError("item has no id")

        status_label = None
        priority_label = None
        assignee = None
        due_date = None
        tags: List[str] = []
        story_points = None

        for column_value in item.get("column_values") or []:
            role = column_role(column_value)
            text = as_text(column_value.get("text"))
            if role == "status" and status_label is None:
                status_label = text
            elif role == "priority" and priority_label is None:
                priority_label = text
            elif role == "person" and assignee is None:
                references = person_references(column_value)
                if references:
                    assignee = resolve_assignee(references[0][0], team)
            elif role == "date" and due_date is None:
                due_date = parse_date(text) or parse_date(_load_value(column_value.get("value")).get("date"))
            elif role == "tags":
                tags.extend(tag.strip() for tag in text.split(",") if tag.strip())
            elif role == "points" and story_points is None:
                story_points = to_float(text)

        return Task(
            id=item_id,
            title=as_text(item.get("name")) or item_id,
            status=canonical_status(status_label),
            priority=canonical_priority(priority_label),
            assignee=assignee,
            due_date=due_date,
            tags=tags,
            story_points=story_points,
        )
