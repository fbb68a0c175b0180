# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""
Shared transformer helpers - platform-agnostic building blocks

Status and priority vocabularies belong to each platform's transformer;
this module only provides the machinery to apply them:
- vocabulary matching (case-insensitive substring, first rule wins)
- field fallback chains for payloads with inconsistent key names
- assignee resolution against a team list
- task summary metrics and output validation
"""

import logging
import math
from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from platform_integrations.platforms.models import (
    Metric,
    ProjectData,
    Task,
    TaskPriority,
    TaskStatus,
    TeamMember,
    UNASSIGNED,
)

logger = logging.getLogger(__name__)

# (keywords, canonical value); the first rule with a matching keyword wins
Vocabulary = Sequence[Tuple[Tuple[str, ...], str]]

INVALID_NAMES = {"", "undefined", "null", "none"}


def match_vocabulary(text: Optional[str], vocabulary: Vocabulary) -> Optional[str]:
    """Return the canonical value of the first rule whose keyword occurs in ``text``."""
    if not text:
        return None
    lowered = str(text).strip().lower()
    for keywords, canonical in vocabulary:
        if any(keyword in lowered for keyword in keywords):
            return canonical
    return None


def first(data: Optional[Mapping[str, Any]], *keys: str, default: Any = None) -> Any:
    """Return the first non-empty value among ``keys`` (field fallback chain)."""
    if not data:
        return default
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return default


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[date]:
    """Parse ISO dates, ISO datetimes and epoch milliseconds; None on failure."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.utcfromtimestamp(value / 1000).date()
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def completion_rate(done: int, total: int) -> int:
    """Percentage of done tasks, rounded half up; 0 for an empty project."""
    if total <= 0:
        return 0
    return int(math.floor(done / total * 100 + 0.5))


def _member_key(value: Any) -> str:
    return as_text(value).lower()


def resolve_assignee(reference: Any, team: Iterable[TeamMember]) -> Optional[TeamMember]:
    """
    Join a raw assignee reference against the team list.

    ``reference`` may be a bare id, or a dict carrying an id and/or an
    email. Ids are compared as strings, so 567 and "567" match.

    Returns:
        The matching member, ``UNASSIGNED`` when the reference points at
        nobody on the team, or None when there is no reference at all.
    """
    if reference is None or reference == "":
        return None

    if isinstance(reference, Mapping):
        ref_id = first(reference, "id", "accountId", "userId", "user_id")
        ref_email = first(reference, "email", "emailAddress")
    else:
        ref_id, ref_email = reference, None

    if ref_id is None and ref_email is None:
        return None

    members = list(team)
    if ref_id is not None:
        for member in members:
            if member.id == as_text(ref_id):
                return member
    if ref_email:
        for member in members:
            if member.email and _member_key(member.email) == _member_key(ref_email):
                return member
    return UNASSIGNED


def dedupe_team(members: Iterable[TeamMember]) -> List[TeamMember]:
    """Drop members whose id or email has already been seen."""
    seen_ids = set()
    seen_emails = set()
    unique: List[TeamMember] = []
    for member in members:
        email = _member_key(member.email) if member.email else None
        if member.id in seen_ids or (email and email in seen_emails):
            continue
        seen_ids.add(member.id)
        if email:
            seen_emails.add(email)
        unique.append(member)
    return unique


def summarize_tasks(tasks: Sequence[Task], team: Sequence[TeamMember]) -> List[Metric]:
    """Metrics every platform reports, computed in one pass over the tasks."""
    statuses: Counter = Counter()
    priorities: Counter = Counter()
    unassigned = 0
    total_points = 0.0
    done_points = 0.0

    for task in tasks:
        statuses[task.status] += 1
        priorities[task.priority] += 1
        if task.assignee is None or task.assignee is UNASSIGNED:
            unassigned += 1
        if task.story_points:
            total_points += task.story_points
            if task.status == TaskStatus.DONE.value:
                done_points += task.story_points

    total = len(tasks)
    done = statuses[TaskStatus.DONE.value]
    metrics = [
        Metric("Total Tasks", total),
        Metric("Completed Tasks", done),
        Metric("Completion Rate", completion_rate(done, total), "%"),
    ]
    for status in TaskStatus:
        metrics.append(Metric(status.value, statuses.get(status.value, 0)))
    canonical_statuses = {s.value for s in TaskStatus}
    for status, count in sorted(statuses.items()):
        if status not in canonical_statuses:
            metrics.append(Metric(status, count))
    for priority in TaskPriority:
        metrics.append(Metric(f"{priority.value} Priority", priorities.get(priority.value, 0)))
    metrics.extend([
        Metric("Unassigned Tasks", unassigned),
        Metric("Total Story Points", _round_points(total_points), "points"),
        Metric("Completed Story Points", _round_points(done_points), "points"),
        Metric("Team Size", len(team)),
    ])
    return metrics


def _round_points(points: float) -> float | int:
    rounded = round(points, 1)
    return int(rounded) if rounded == int(rounded) else rounded


def is_valid_project(project: ProjectData, platform: str) -> bool:
    """A project must have an id, a real name, and come from the expected platform."""
    if not as_text(project.id):
        return False
    if as_text(project.name).lower() in INVALID_NAMES:
        return False
    return project.platform == platform


def filter_valid_projects(projects: Iterable[ProjectData], platform: str) -> List[ProjectData]:
    valid = []
    for project in projects:
        if is_valid_project(project, platform):
            valid.append(project)
        else:
            logger.warning(
                f"Discarding invalid {platform} project output "
                f"(id={project.id!r}, name={project.name!r}, platform={project.platform!r})"
            )
    return valid
