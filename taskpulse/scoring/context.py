"""
Tool: Scoring Context
Purpose: Derive the activity context the prioritizer scores against

Signals derived from the snapshot (no self-reporting):
- Work pattern: how many tasks were completed today
- Time of day: coarse band of the current hour
- Most productive hours: hours whose sessions score highest
- Situation analysis: workload level, urgency and recommended focus area

Usage:
    from taskpulse.scoring.context import build_context, analyze_situation

    context = build_context(tasks, sessions, projects, now=datetime.now())
    analysis = analyze_situation(context)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from statistics import mean
from typing import Iterable

from taskpulse.tasks.hierarchy import get_completed_on, get_overdue_tasks
from taskpulse.tasks.models import Project, Task, TaskPriority, TaskStatus, WorkSession


WORK_PATTERNS = ["productive", "moderate", "low", "inactive"]
TIMES_OF_DAY = ["morning", "afternoon", "evening", "night"]
WORKLOAD_LEVELS = ["light", "moderate", "heavy", "overwhelming"]
FOCUS_AREAS = ["tasks", "projects", "planning", "review", "maintenance"]


@dataclass
class ScoringContext:
    """Everything the prioritizer needs besides the task itself."""

    now: datetime
    work_pattern: str = "inactive"
    time_of_day: str = "night"
    most_productive_hours: list[int] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    recent_completions: int = 0
    last_task_update: datetime | None = None

    @property
    def current_hour(self) -> int:
        return self.now.hour


@dataclass
class SituationMetrics:
    overdue_tasks: int = 0
    urgent_tasks: int = 0
    completion_rate: float = 0.0
    work_session_gap: int = 24  # hours since last task update
    project_deadlines: int = 0


@dataclass
class ContextAnalysis:
    workload_level: str = "light"
    urgency_score: int = 0  # 0-100
    focus_area: str = "tasks"
    metrics: SituationMetrics = field(default_factory=SituationMetrics)


def classify_time_of_day(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return "night"


def classify_work_pattern(tasks: Iterable[Task], now: datetime) -> tuple[str, int]:
    """
    Classify today's activity by completed task count.

    Returns:
        (pattern, completed_today) where pattern is productive (5+),
        moderate (3+), low (1+) or inactive
    """
    tasks = list(tasks)
    if not tasks:
        return "inactive", 0

    completed_today = len(get_completed_on(tasks, now.date()))
    if completed_today >= 5:
        return "productive", completed_today
    if completed_today >= 3:
        return "moderate", completed_today
    if completed_today >= 1:
        return "low", completed_today
    return "inactive", completed_today


def most_productive_hours(sessions: Iterable[WorkSession], top: int = 3) -> list[int]:
    """Hours of day whose scored sessions average highest, best first."""
    by_hour: dict[int, list[float]] = defaultdict(list)
    for session in sessions:
        if session.productivity_score is None:
            continue
        by_hour[session.started_at.hour].append(session.productivity_score)

    ranked = sorted(by_hour.items(), key=lambda item: (-mean(item[1]), item[0]))
    return [hour for hour, _ in ranked[:top]]


def productivity_ratio(sessions: Iterable[WorkSession], now: datetime) -> float:
    """
    Today's average productivity relative to the historical average.

    Returns 0.0 when either side has no scored sessions, so a missing
    baseline never looks like a peak.
    """
    today: list[float] = []
    history: list[float] = []
    for session in sessions:
        if session.productivity_score is None:
            continue
        if session.started_at.date() == now.date():
            today.append(session.productivity_score)
        elif session.started_at < now:
            history.append(session.productivity_score)

    if not today or not history:
        return 0.0
    baseline = mean(history)
    if baseline <= 0:
        return 0.0
    return mean(today) / baseline


def build_context(
    tasks: Iterable[Task],
    sessions: Iterable[WorkSession] = (),
    projects: Iterable[Project] = (),
    now: datetime | None = None,
) -> ScoringContext:
    now = now or datetime.now()
    tasks = list(tasks)
    pattern, completed_today = classify_work_pattern(tasks, now)
    updates = [t.updated_at for t in tasks if t.updated_at is not None]

    return ScoringContext(
        now=now,
        work_pattern=pattern,
        time_of_day=classify_time_of_day(now.hour),
        most_productive_hours=most_productive_hours(sessions),
        projects=list(projects),
        tasks=tasks,
        recent_completions=completed_today,
        last_task_update=max(updates) if updates else None,
    )


def _situation_metrics(context: ScoringContext) -> SituationMetrics:
    tasks = context.tasks
    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)

    if context.last_task_update is not None:
        gap = int((context.now - context.last_task_update).total_seconds() // 3600)
    else:
        gap = 24

    return SituationMetrics(
        overdue_tasks=len(get_overdue_tasks(tasks, context.now)),
        urgent_tasks=sum(
            1 for t in tasks
            if t.priority == TaskPriority.URGENT and t.status != TaskStatus.COMPLETED
        ),
        completion_rate=(completed / total * 100) if total else 0.0,
        work_session_gap=gap,
        project_deadlines=sum(1 for p in context.projects if p.is_active and p.progress < 80),
    )


def analyze_situation(context: ScoringContext) -> ContextAnalysis:
    """Workload level, 0-100 urgency and recommended focus area."""
    metrics = _situation_metrics(context)
    pending = sum(1 for t in context.tasks if t.is_open)
    active_projects = sum(1 for p in context.projects if p.is_active)

    if pending > 20 or metrics.urgent_tasks > 5 or active_projects > 8:
        workload = "overwhelming"
    elif pending > 10 or metrics.urgent_tasks > 2 or active_projects > 4:
        workload = "heavy"
    elif pending > 5 or metrics.urgent_tasks > 0 or active_projects > 2:
        workload = "moderate"
    else:
        workload = "light"

    urgency = metrics.overdue_tasks * 25 + metrics.urgent_tasks * 15
    if metrics.completion_rate < 50:
        urgency += 20
    elif metrics.completion_rate < 70:
        urgency += 10
    if metrics.work_session_gap > 48:
        urgency += 15
    elif metrics.work_session_gap > 24:
        urgency += 8
    urgency += metrics.project_deadlines * 10

    if metrics.overdue_tasks > 0 or metrics.urgent_tasks > 2:
        focus = "tasks"
    elif metrics.project_deadlines > 0:
        focus = "projects"
    elif metrics.work_session_gap > 24:
        focus = "planning"
    elif metrics.completion_rate > 80:
        focus = "review"
    elif pending > 10:
        focus = "maintenance"
    else:
        focus = "tasks"

    return ContextAnalysis(
        workload_level=workload,
        urgency_score=min(urgency, 100),
        focus_area=focus,
        metrics=metrics,
    )
