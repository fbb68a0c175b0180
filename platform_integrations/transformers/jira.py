"""
Jira Transformer

Maps Jira REST v3 project and issue payloads onto ``ProjectData``.

Status mapping (issue ``fields.status``):

    name contains                              canonical
    -----------------------------------------  -----------
    not started, incomplete, not done,         statusCategory, else To Do
    unresolved
    block, impediment, on hold                 Blocked
    review, qa, verif, testing                 In Review
    done, closed, resolved, complete, release  Done
    to do, todo, backlog, selected, open, new  To Do
    progress, development, doing, started      In Progress

When the name matches nothing, ``statusCategory.key`` decides
(new -> To Do, indeterminate -> In Progress, done -> Done); otherwise the
name is kept as is.

Priority mapping (``fields.priority.name``): critical/blocker/urgent ->
Critical, highest/high/major -> High, lowest/low/minor/trivial -> Low,
everything else -> Medium.
"""

import logging
from typing import Any, Dict, List, Optional

from platform_integrations.errors import TransformationError
from platform_integrations.platforms.models import (
    JiraPayload,
    JiraProjectPayload,
    Metric,
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

NEGATED_STATUS_VOCABULARY: Vocabulary = (
    (("not started", "unstarted", "incomplete", "not done", "unresolved"), TaskStatus.TODO.value),
)

STATUS_VOCABULARY: Vocabulary = (
    (("block", "impediment", "on hold"), TaskStatus.BLOCKED.value),
    (("review", "qa", "verif", "testing"), TaskStatus.IN_REVIEW.value),
    (("done", "closed", "resolved", "complete", "release"), TaskStatus.DONE.value),
    (("to do", "todo", "backlog", "selected", "open", "new"), TaskStatus.TODO.value),
    (("progress", "development", "doing", "started"), TaskStatus.IN_PROGRESS.value),
)

STATUS_CATEGORIES = {
    "new": TaskStatus.TODO.value,
    "indeterminate": TaskStatus.IN_PROGRESS.value,
    "done": TaskStatus.DONE.value,
}

PRIORITY_VOCABULARY: Vocabulary = (
    (("critical", "blocker", "urgent"), TaskPriority.CRITICAL.value),
    (("highest", "high", "major"), TaskPriority.HIGH.value),
    (("lowest", "low", "minor", "trivial"), TaskPriority.LOW.value),
    (("medium", "normal"), TaskPriority.MEDIUM.value),
)

ISSUE_TYPE_METRICS = (
    ("story", "Stories"),
    ("bug", "Bugs"),
    ("epic", "Epics"),
    ("task", "Tasks"),
)

STORY_POINT_FIELDS = ("customfield_10016", "story_points", "storyPoints")


def canonical_status(status: Any) -> str:
    """Map a Jira status object or name onto the canonical status set."""
    if isinstance(status, dict):
        name = as_text(status.get("name"))
        category = as_text((status.get("statusCategory") or {}).get("key")).lower()
    else:
        name, category = as_text(status), ""

    negated = match_vocabulary(name, NEGATED_STATUS_VOCABULARY)
    if negated:
        return STATUS_CATEGORIES.get(category, negated)
    matched = match_vocabulary(name, STATUS_VOCABULARY)
    if matched:
        return matched
    if category in STATUS_CATEGORIES:
        return STATUS_CATEGORIES[category]
    return name or TaskStatus.TODO.value


def canonical_priority(priority: Any) -> str:
    name = priority.get("name") if isinstance(priority, dict) else priority
    return match_vocabulary(as_text(name), PRIORITY_VOCABULARY) or TaskPriority.MEDIUM.value


def _member(user: Dict[str, Any], role: str) -> Optional[TeamMember]:
    member_id = as_text(first(user, "accountId", "id", "key"))
    if not member_id:
        return None
    avatars = user.get("avatarUrls") or {}
    return TeamMember(
        id=member_id,
        name=as_text(first(user, "displayName", "name", default="Unknown")),
        email=first(user, "emailAddress", "email"),
        role=role,
        avatar=avatars.get("32x32") or avatars.get("48x48"),
    )


class JiraTransformer:
    """Jira payload -> list of ``ProjectData``."""

    platform = Platform.JIRA.value

    def transform(self, payload: JiraPayload) -> List[ProjectData]:
        if not isinstance(payload, JiraPayload):
            raise TransformationError(
                f"Expected a Jira payload, got {type(payload).__name__}"
            )

        projects = []
        for entry in payload.projects:
            try:
                projects.append(self._transform_project(entry, payload.domain))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                key = entry.project.get("key") if isinstance(entry.project, dict) else None
                logger.warning(f"Skipping Jira project {key}: {e}")
        return projects

    def _transform_project(self, entry: JiraProjectPayload, domain: str) -> ProjectData:
        project = entry.project
        key = as_text(project.get("key"))

        team = self._build_team(project, entry.issues)
        tasks = []
        for issue in entry.issues:
            try:
                tasks.append(self._transform_issue(issue, team))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping Jira issue {issue.get('key') if isinstance(issue, dict) else issue}: {e}")

        metrics = summarize_tasks(tasks, team) + self._issue_type_metrics(tasks)

        lead = project.get("lead") or {}
        return ProjectData(
            id=as_text(first(project, "id", "key")),
            name=as_text(project.get("name")),
            platform=self.platform,
            description=as_text(project.get("description")),
            status="archived" if project.get("archived") else "active",
            tasks=tasks,
            team=team,
            metrics=metrics,
            platform_specific={
                "jira": {
                    "projectKey": key,
                    "projectType": project.get("projectTypeKey"),
                    "lead": lead.get("displayName"),
                    "url": f"https://{domain}/browse/{key}" if key else None,
                    "issueTypes": [t.get("name") for t in project.get("issueTypes") or [] if t.get("name")],
                    "components": [c.get("name") for c in project.get("components") or [] if c.get("name")],
                }
            },
        )

    def _build_team(self, project: Dict[str, Any], issues: List[Dict[str, Any]]) -> List[TeamMember]:
        members = []
        lead = _member(project.get("lead") or {}, "Project Lead")
        if lead:
            members.append(lead)
        for issue in issues:
            fields = issue.get("fields") if isinstance(issue, dict) else None
            assignee = fields.get("assignee") if isinstance(fields, dict) else None
            if isinstance(assignee, dict):
                member = _member(assignee, "Developer")
                if member:
                    members.append(member)
        return dedupe_team(members)

    def _transform_issue(self, issue: Dict[str, Any], team: List[TeamMember]) -> Task:
        fields = issue.get("fields") or {}
        issue_id = as_text(first(issue, "key", "id"))
        if not issue_id:
            raise ValueError("issue has no key or id")

        return Task(
            id=issue_id,
            title=as_text(fields.get("summary")) or issue_id,
            status=canonical_status(fields.get("status")),
            priority=canonical_priority(fields.get("priority")),
            assignee=resolve_assignee(fields.get("assignee"), team),
            due_date=parse_date(fields.get("duedate")),
            tags=[as_text(label) for label in fields.get("labels") or [] if as_text(label)],
            story_points=to_float(first(fields, *STORY_POINT_FIELDS)),
            type=as_text((fields.get("issuetype") or {}).get("name")) or None,
        )

    def _issue_type_metrics(self, tasks: List[Task]) -> List[Metric]:
        counts = {label: 0 for _, label in ISSUE_TYPE_METRICS}
        for task in tasks:
            issue_type = (task.type or "").lower()
            for keyword, label in ISSUE_TYPE_METRICS:
                if keyword in issue_type:
                    counts[label] += 1
                    break
        return [Metric(label, count) for label, count in counts.items()]
