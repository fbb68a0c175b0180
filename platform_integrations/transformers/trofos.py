"""
TROFOS Transformer

Joins TROFOS project, backlog, sprint and member payloads into
``ProjectData``. TROFOS payloads are inconsistent about key names
(``story_points`` vs ``storyPoints``, ``assigneeId`` vs ``assignee_id``
vs a nested assignee object), so every field is read through an explicit
fallback chain.

Status mapping: exact enum values first

    BACKLOG, TODO, TO_DO, OPEN, NEW,         -> To Do
    NOT_STARTED, INCOMPLETE
    IN_PROGRESS, DOING, STARTED              -> In Progress
    REVIEW, IN_REVIEW, TESTING, QA           -> In Review
    DONE, COMPLETED, FINISHED, CLOSED        -> Done
    BLOCKED, STUCK, ON_HOLD                  -> Blocked

then free text: not started/incomplete/not done/unresolved -> To Do,
block/stuck/hold -> Blocked, review/test -> In Review,
done/complete/finish/closed -> Done, to do/todo/backlog/open/new ->
To Do, progress/doing/started -> In Progress; other text kept as is.

Priority mapping: numeric 4+ -> Critical, 3 -> High, 2 -> Medium,
1 or less -> Low; strings VERY_HIGH/CRITICAL/URGENT -> Critical,
HIGH -> High, MEDIUM -> Medium, LOW/VERY_LOW -> Low; default Medium.
"""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from platform_integrations.errors import TransformationError
from platform_integrations.platforms.models import (
    Metric,
    Platform,
    ProjectData,
    Task,
    TaskPriority,
    TaskStatus,
    TeamMember,
    TrofosPayload,
    TrofosProjectPayload,
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

STATUS_ENUM = {
    "BACKLOG": TaskStatus.TODO.value,
    "TODO": TaskStatus.TODO.value,
    "TO_DO": TaskStatus.TODO.value,
    "OPEN": TaskStatus.TODO.value,
    "NEW": TaskStatus.TODO.value,
    "NOT_STARTED": TaskStatus.TODO.value,
    "INCOMPLETE": TaskStatus.TODO.value,
    "IN_PROGRESS": TaskStatus.IN_PROGRESS.value,
    "DOING": TaskStatus.IN_PROGRESS.value,
    "STARTED": TaskStatus.IN_PROGRESS.value,
    "REVIEW": TaskStatus.IN_REVIEW.value,
    "IN_REVIEW": TaskStatus.IN_REVIEW.value,
    "TESTING": TaskStatus.IN_REVIEW.value,
    "QA": TaskStatus.IN_REVIEW.value,
    "DONE": TaskStatus.DONE.value,
    "COMPLETED": TaskStatus.DONE.value,
    "FINISHED": TaskStatus.DONE.value,
    "CLOSED": TaskStatus.DONE.value,
    "BLOCKED": TaskStatus.BLOCKED.value,
    "STUCK": TaskStatus.BLOCKED.value,
    "ON_HOLD": TaskStatus.BLOCKED.value,
}

STATUS_VOCABULARY: Vocabulary = (
    (("not started", "unstarted", "incomplete", "not done", "unresolved"), TaskStatus.TODO.value),
    (("block", "stuck", "hold"), TaskStatus.BLOCKED.value),
    (("review", "test"), TaskStatus.IN_REVIEW.value),
    (("done", "complete", "finish", "closed"), TaskStatus.DONE.value),
    (("to do", "todo", "backlog", "open", "new"), TaskStatus.TODO.value),
    (("progress", "doing", "started"), TaskStatus.IN_PROGRESS.value),
)

PRIORITY_VOCABULARY: Vocabulary = (
    (("very_high", "very high", "critical", "urgent", "highest"), TaskPriority.CRITICAL.value),
    (("high",), TaskPriority.HIGH.value),
    (("low",), TaskPriority.LOW.value),
    (("medium", "normal"), TaskPriority.MEDIUM.value),
)

ROLE_VOCABULARY: Vocabulary = (
    (("manager", "lead"), "Project Manager"),
    (("developer", "engineer"), "Developer"),
    (("designer",), "Designer"),
    (("tester", "qa"), "QA Engineer"),
    (("analyst",), "Business Analyst"),
    (("owner", "product"), "Product Owner"),
    (("scrum", "master"), "Scrum Master"),
)

SPRINT_ACTIVE = {"ACTIVE", "CURRENT", "IN_PROGRESS", "STARTED"}
SPRINT_COMPLETED = {"COMPLETED", "CLOSED", "DONE", "FINISHED"}

# Field fallback chains
ID_FIELDS = ("id", "backlog_id", "backlogId")
TITLE_FIELDS = ("title", "name", "summary")
POINT_FIELDS = ("story_points", "storyPoints", "points", "estimate")
ASSIGNEE_FIELDS = ("assigneeId", "assignee_id", "assignee", "assigned_to", "assignedTo")
SPRINT_FIELDS = ("sprint_id", "sprintId")
DUE_FIELDS = ("due_date", "dueDate", "deadline")
UPDATED_FIELDS = ("updated_at", "updatedAt", "created_at", "createdAt")
MEMBER_ID_FIELDS = ("id", "user_id", "userId")
MEMBER_NAME_FIELDS = ("name", "user_display_name", "displayName", "username")
MEMBER_EMAIL_FIELDS = ("email", "user_email", "userEmail")

HASHTAG_PATTERN = re.compile(r"(?<![\w&])#([A-Za-z][\w-]*)")
BRACKET_PATTERN = re.compile(r"\[([^\[\]\n]{1,40})\]")


def canonical_status(status: Any) -> str:
    """Map a TROFOS status (enum string, free text or object) onto the canonical set."""
    if isinstance(status, dict):
        status = first(status, "name", "status", "value")
    text = as_text(status)
    if not text:
        return TaskStatus.TODO.value

    enum_key = re.sub(r"[\s-]+", "_", text.upper())
    if enum_key in STATUS_ENUM:
        return STATUS_ENUM[enum_key]
    return match_vocabulary(text, STATUS_VOCABULARY) or text


def canonical_priority(priority: Any) -> str:
    if isinstance(priority, dict):
        priority = first(priority, "name", "value", "level")
    number = to_float(priority)
    if number is not None:
        if number >= 4:
            return TaskPriority.CRITICAL.value
        if number >= 3:
            return TaskPriority.HIGH.value
        if number >= 2:
            return TaskPriority.MEDIUM.value
        return TaskPriority.LOW.value
    return match_vocabulary(as_text(priority), PRIORITY_VOCABULARY) or TaskPriority.MEDIUM.value


def canonical_role(role: Any) -> str:
    if isinstance(role, dict):
        role = first(role, "role_name", "name", "role")
    return match_vocabulary(as_text(role), ROLE_VOCABULARY) or "Team Member"


def sprint_state(sprint: Dict[str, Any]) -> str:
    status = as_text(first(sprint, "status", "state")).upper()
    if status in SPRINT_ACTIVE:
        return "Active"
    if status in SPRINT_COMPLETED:
        return "Completed"
    return "Planning"


def extract_labels(description: Any) -> List[str]:
    """``#hashtags`` and ``[bracketed]`` labels embedded in a description."""
    text = as_text(description)
    if not text:
        return []
    labels = HASHTAG_PATTERN.findall(text)
    labels.extend(label.strip() for label in BRACKET_PATTERN.findall(text) if label.strip())
    return labels


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        key = value.lower()
        if key not in seen:
            seen.add(key)
            result.append(value)
    return result


def _assignee_reference(item: Dict[str, Any]) -> Any:
    reference = first(item, *ASSIGNEE_FIELDS)
    if isinstance(reference, dict):
        nested_id = first(reference, "id", "user_id", "userId")
        return {"id": nested_id, "email": first(reference, *MEMBER_EMAIL_FIELDS)}
    return reference


class TrofosTransformer:
    """TROFOS payload -> list of ``ProjectData``."""

    platform = Platform.TROFOS.value

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.utcnow

    def transform(self, payload: TrofosPayload) -> List[ProjectData]:
        if not isinstance(payload, TrofosPayload):
            raise TransformationError(
                f"Expected a TROFOS payload, got {type(payload).__name__}"
            )

        projects = []
        for entry in payload.projects:
            try:
                projects.append(self._transform_project(entry, payload.server_url))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                project_id = first(entry.project, "id", "projectId") if isinstance(entry.project, dict) else None
                logger.warning(f"Skipping TROFOS project {project_id}: {e}")
        return projects

    def _transform_project(self, entry: TrofosProjectPayload, server_url: str) -> ProjectData:
        project = entry.project
        team = self._build_team(entry.resources)

        tasks: List[Task] = []
        task_sprints: Dict[str, str] = {}
        explicit_priorities = 0
        for item in entry.backlog_items:
            try:
                task = self._transform_item(item, team)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping TROFOS backlog item {first(item, *ID_FIELDS) if isinstance(item, dict) else item}: {e}")
                continue
            tasks.append(task)
            sprint_id = as_text(first(item, *SPRINT_FIELDS))
            if sprint_id:
                task_sprints[task.id] = sprint_id
            if first(item, "priority") is not None:
                explicit_priorities += 1

        sprints = self._summarize_sprints(entry.sprints, tasks, task_sprints)
        metrics = summarize_tasks(tasks, team) + self._sprint_metrics(sprints)

        project_id = as_text(first(project, "id", "projectId"))
        return ProjectData(
            id=project_id,
            name=as_text(first(project, "name", "pname", "title")),
            platform=self.platform,
            description=as_text(first(project, "description", "pdescription")),
            status=as_text(first(project, "status")) or ("archived" if project.get("is_archive") else "active"),
            tasks=tasks,
            team=team,
            metrics=metrics,
            platform_specific={
                "trofos": {
                    "projectId": project_id,
                    "serverUrl": server_url,
                    "courseId": first(project, "course_id", "courseId"),
                    "sprints": sprints,
                    "backlogCount": len(entry.backlog_items),
                    "dataQuality": self._data_quality(entry.backlog_items, tasks, explicit_priorities),
                }
            },
        )

    def _build_team(self, resources: List[Dict[str, Any]]) -> List[TeamMember]:
        members = []
        for resource in resources:
            if not isinstance(resource, dict):
                continue
            user = resource.get("user") if isinstance(resource.get("user"), dict) else {}
            merged = {**user, **{k: v for k, v in resource.items() if v is not None and k != "user"}}
            member_id = as_text(first(merged, *MEMBER_ID_FIELDS))
            if not member_id:
                logger.debug(f"Skipping TROFOS member without id: {resource}")
                continue
            members.append(TeamMember(
                id=member_id,
                name=as_text(first(merged, *MEMBER_NAME_FIELDS)) or "Unknown",
                email=first(merged, *MEMBER_EMAIL_FIELDS),
                role=canonical_role(first(merged, "role", "role_name", "user_role")),
                avatar=first(merged, "avatar", "avatarUrl"),
            ))
        return dedupe_team(members)

    def _transform_item(self, item: Dict[str, Any], team: List[TeamMember]) -> Task:
        item_id = as_text(first(item, *ID_FIELDS))
        if not item_id:
            raise ValueError("backlog item has no id")

        tags = [as_text(tag) for tag in first(item, "tags", "labels", default=[]) or [] if as_text(tag)]
        tags.extend(extract_labels(item.get("description")))

        return Task(
            id=item_id,
            title=as_text(first(item, *TITLE_FIELDS)) or f"Backlog item {item_id}",
            status=canonical_status(item.get("status")),
            priority=canonical_priority(item.get("priority")),
            assignee=resolve_assignee(_assignee_reference(item), team),
            due_date=parse_date(first(item, *DUE_FIELDS)),
            tags=_unique(tags),
            story_points=to_float(first(item, *POINT_FIELDS)),
            type=as_text(first(item, "type", "backlog_type")) or None,
        )

    def _summarize_sprints(
        self,
        sprints: List[Dict[str, Any]],
        tasks: List[Task],
        task_sprints: Dict[str, str],
    ) -> List[Dict[str, Any]]:
        by_sprint: Dict[str, List[Task]] = {}
        for task in tasks:
            sprint_id = task_sprints.get(task.id)
            if sprint_id:
                by_sprint.setdefault(sprint_id, []).append(task)

        summaries = []
        for sprint in sprints:
            if not isinstance(sprint, dict):
                continue
            sprint_id = as_text(first(sprint, "id", "sprint_id", "sprintId"))
            sprint_tasks = by_sprint.get(sprint_id, [])
            planned = sum(t.story_points or 0 for t in sprint_tasks)
            completed = sum(t.story_points or 0 for t in sprint_tasks if t.status == TaskStatus.DONE.value)
            start = parse_date(first(sprint, "start_date", "startDate"))
            end = parse_date(first(sprint, "end_date", "endDate"))
            summaries.append({
                "id": sprint_id,
                "name": as_text(sprint.get("name")) or f"Sprint {sprint_id}",
                "status": sprint_state(sprint),
                "startDate": start.isoformat() if start else None,
                "endDate": end.isoformat() if end else None,
                "taskCount": len(sprint_tasks),
                "plannedPoints": planned,
                "completedPoints": completed,
            })
        return summaries

    def _sprint_metrics(self, sprints: List[Dict[str, Any]]) -> List[Metric]:
        completed = [s for s in sprints if s["status"] == "Completed"]
        velocity = 0.0
        if completed:
            velocity = round(sum(s["completedPoints"] for s in completed) / len(completed), 1)
        return [
            Metric("Total Sprints", len(sprints)),
            Metric("Active Sprints", sum(1 for s in sprints if s["status"] == "Active")),
            Metric("Completed Sprints", len(completed)),
            Metric("Average Velocity", velocity, "points"),
        ]

    def _data_quality(
        self,
        items: List[Dict[str, Any]],
        tasks: List[Task],
        explicit_priorities: int,
    ) -> Dict[str, int]:
        """Scores 0-100: how complete, how mappable and how recent the backlog is."""
        if not tasks:
            return {"completeness": 0, "accuracy": 0, "freshness": 0}

        total = len(tasks)
        with_assignee = sum(1 for t in tasks if t.assignee is not None)
        with_points = sum(1 for t in tasks if t.story_points is not None)
        completeness = round((with_assignee + with_points + explicit_priorities) / (3 * total) * 100)

        canonical = {s.value for s in TaskStatus}
        accuracy = round(sum(1 for t in tasks if t.status in canonical) / total * 100)

        freshness = 0
        timestamps = [parse_date(first(item, *UPDATED_FIELDS)) for item in items if isinstance(item, dict)]
        timestamps = [t for t in timestamps if t]
        if timestamps:
            age = (self._clock().date() - max(timestamps)).days
            for limit, score in ((7, 100), (30, 75), (90, 50)):
                if age <= limit:
                    freshness = score
                    break
            else:
                freshness = 25

        return {"completeness": completeness, "accuracy": accuracy, "freshness": freshness}
