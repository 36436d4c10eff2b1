"""Team analytics computed from in-memory issues and sprints.

Every function here is pure: the same issues, sprints and name lookup always
produce the same output, so no backend is needed to test them.
"""

import math
from typing import Optional

from flowcraft.services.models import IssueStatus, SprintStatus, parse_timestamp

PRIORITY_KEYS = ("P0", "P1", "P2", "P3", "P4", "P5")
STATUS_KEYS = tuple(s.value for s in IssueStatus)
IN_PROGRESS_STATUSES = {IssueStatus.IN_PROGRESS, IssueStatus.IN_REVIEW}

MILLISECONDS_PER_DAY = 1000 * 60 * 60 * 24


def completion_rate(completed: int, total: int) -> float:
    """Completed share as a percentage; 0 when there is nothing to complete."""
    return (completed / total) * 100 if total > 0 else 0


def format_percentage(count: int, total: int) -> str:
    if total == 0:
        return "0.0"
    return f"{count / total * 100:.1f}"


def sprint_duration_days(start, end) -> int:
    """Whole days between start and end, rounded up."""
    start, end = parse_timestamp(start), parse_timestamp(end)
    if start is None or end is None:
        return 0
    elapsed_ms = (end - start).total_seconds() * 1000
    return math.ceil(elapsed_ms / MILLISECONDS_PER_DAY)


def build_user_name_map(memberships: list) -> dict:
    """Map user ids to display names from team memberships."""
    return {
        m["userId"]: m.get("userName") or m.get("userEmail") or "Unknown"
        for m in memberships
        if m.get("userId")
    }


def engineer_stats(issues: list, sprints: list, user_names: Optional[dict] = None) -> list:
    """Per-assignee workload and completion figures.

    Engineers appear in order of their first assigned issue. The per-sprint
    average divides by the number of Active or Completed sprints, at least 1.
    """
    user_names = user_names or {}
    engineers = {}

    for issue in issues:
        user_id = issue.assigned_user_id
        if not user_id:
            continue

        if user_id not in engineers:
            engineers[user_id] = {
                "userId": user_id,
                "name": user_names.get(user_id) or user_id,
                "totalTasks": 0,
                "completedTasks": 0,
                "inProgressTasks": 0,
                "todoTasks": 0,
                "completionRate": 0,
                "avgTasksPerSprint": 0,
                "priorityDistribution": {key: 0 for key in PRIORITY_KEYS},
            }

        stats = engineers[user_id]
        stats["totalTasks"] += 1

        priority_key = f"P{issue.priority}"
        if priority_key in stats["priorityDistribution"]:
            stats["priorityDistribution"][priority_key] += 1

        if issue.status == IssueStatus.DONE:
            stats["completedTasks"] += 1
        elif issue.status in IN_PROGRESS_STATUSES:
            stats["inProgressTasks"] += 1
        elif issue.status == IssueStatus.TODO:
            stats["todoTasks"] += 1

    worked_sprints = sum(
        1 for s in sprints
        if s.status in (SprintStatus.ACTIVE, SprintStatus.COMPLETED)
    ) or 1

    for stats in engineers.values():
        stats["completionRate"] = completion_rate(stats["completedTasks"], stats["totalTasks"])
        stats["avgTasksPerSprint"] = stats["totalTasks"] / worked_sprints

    return list(engineers.values())


def sprint_performance(issues: list, sprints: list) -> list:
    results = []

    for sprint in sprints:
        sprint_issues = [i for i in issues if i.sprint_id == sprint.id]
        completed = sum(1 for i in sprint_issues if i.status == IssueStatus.DONE)

        results.append({
            "sprintId": sprint.id,
            "sprintName": sprint.title,
            "status": sprint.status.value,
            "totalTasks": len(sprint_issues),
            "completedTasks": completed,
            "completionRate": completion_rate(completed, len(sprint_issues)),
            "duration": sprint_duration_days(sprint.start_date, sprint.end_date),
        })

    return results


def priority_distribution(issues: list) -> list:
    counts = {key: 0 for key in PRIORITY_KEYS}
    for issue in issues:
        key = f"P{issue.priority}"
        if key in counts:
            counts[key] += 1

    return [
        {"name": key, "value": count, "percentage": format_percentage(count, len(issues))}
        for key, count in counts.items()
    ]


def status_distribution(issues: list) -> list:
    counts = {key: 0 for key in STATUS_KEYS}
    for issue in issues:
        counts[IssueStatus(issue.status).value] += 1

    return [
        {"name": key, "value": count, "percentage": format_percentage(count, len(issues))}
        for key, count in counts.items()
    ]


def overview(issues: list) -> dict:
    total = len(issues)
    completed = sum(1 for i in issues if i.status == IssueStatus.DONE)
    in_progress = sum(1 for i in issues if i.status in IN_PROGRESS_STATUSES)
    rate = completion_rate(completed, total)

    return {
        "totalTasks": total,
        "completedTasks": completed,
        "inProgressTasks": in_progress,
        "overallCompletionRate": rate,
        "overallCompletionRateDisplay": f"{rate:.1f}",
    }


def team_analytics(issues: list, sprints: list, user_names: Optional[dict] = None) -> dict:
    """Everything the analytics dashboard shows, from one snapshot."""
    return {
        "overview": overview(issues),
        "engineers": engineer_stats(issues, sprints, user_names),
        "sprints": sprint_performance(issues, sprints),
        "priorityDistribution": priority_distribution(issues),
        "statusDistribution": status_distribution(issues),
    }
