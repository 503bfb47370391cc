"""
Tool: Context Prioritizer
Purpose: Rank tasks and projects by what deserves attention now

Task score (0-100) is a weighted sum of five bounded sub-scores:
    urgency 35%, importance 25%, recency 15%, user preference 15%,
    work-pattern fit 10%

Scores are deterministic for a given snapshot and context: the current time
comes from the context, never from the clock.

Usage:
    from taskpulse.scoring.context import build_context, analyze_situation
    from taskpulse.scoring.prioritizer import prioritize_context

    context = build_context(tasks, sessions, projects)
    result = prioritize_context(context, analyze_situation(context))
    result.prioritized_tasks[0].reasons
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from taskpulse.scoring.context import ContextAnalysis, ScoringContext
from taskpulse.tasks.hierarchy import days_between, round_half_up
from taskpulse.tasks.models import Project, Task, TaskPriority, TaskStatus


PRIORITY_BASE_SCORES = {
    TaskPriority.URGENT: 100,
    TaskPriority.HIGH: 75,
    TaskPriority.MEDIUM: 50,
    TaskPriority.LOW: 25,
}

BLOCKING_KEYWORDS = ("blocker", "dependency")

MAX_REASONS = 3
MAX_RECOMMENDATIONS = 4


@dataclass(frozen=True)
class PriorityWeights:
    urgency: float = 0.35
    importance: float = 0.25
    recency: float = 0.15
    user_preference: float = 0.15
    work_pattern: float = 0.10


DEFAULT_WEIGHTS = PriorityWeights()


@dataclass
class PrioritizedTask:
    id: str
    title: str
    priority: str
    status: str
    priority_score: int
    urgency_score: int
    importance_score: int
    reasons: list[str] = field(default_factory=list)


@dataclass
class PrioritizedProject:
    id: str
    name: str
    status: str
    progress: float
    priority_score: int
    deadline_score: int
    progress_score: int
    reasons: list[str] = field(default_factory=list)


@dataclass
class TimeAllocation:
    """Suggested share of the day, in percent."""

    tasks: int = 40
    projects: int = 30
    planning: int = 20
    review: int = 10


@dataclass
class PrioritizedContext:
    prioritized_tasks: list[PrioritizedTask]
    prioritized_projects: list[PrioritizedProject]
    focus_recommendations: list[str]
    time_allocation: TimeAllocation


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


# =============================================================================
# Task sub-scores
# =============================================================================


def urgency_score(task: Task, context: ScoringContext) -> float:
    """Declared priority plus staleness and status bonuses, clamped to 100."""
    score = PRIORITY_BASE_SCORES.get(task.priority, 25)

    if task.updated_at is not None:
        days = days_between(task.updated_at, context.now)
        if days > 7:
            score += 30
        elif days > 3:
            score += 15
        elif days > 1:
            score += 5

    if task.status == TaskStatus.IN_PROGRESS:
        score += 20
    elif task.status == TaskStatus.PENDING:
        score += 10

    return clamp_score(score)


def find_related_project(task: Task, projects: list[Project]) -> Project | None:
    title = task.title.lower().strip()
    for project in projects:
        if task.project_id is not None and project.id == task.project_id:
            return project
        if title and title in project.name.lower():
            return project
    return None


def importance_score(task: Task, context: ScoringContext) -> float:
    score = 50

    project = find_related_project(task, context.projects)
    if project is not None:
        score += 25
        # Projects that have barely started need the push most
        if project.progress < 30:
            score += 15
        elif project.progress < 60:
            score += 10

    title = task.title.lower()
    if any(keyword in title for keyword in BLOCKING_KEYWORDS):
        score += 30

    return clamp_score(score)


def recency_score(task: Task, context: ScoringContext) -> float:
    if task.updated_at is None:
        return 25.0

    days = days_between(task.updated_at, context.now)
    if days <= 0:
        return 100.0
    if days == 1:
        return 80.0
    if days <= 3:
        return 60.0
    if days <= 7:
        return 40.0
    return 20.0


def user_preference_score(task: Task, context: ScoringContext) -> float:
    pattern = context.work_pattern
    if pattern == "productive":
        # Productive days take on the hard things
        return 80.0 if task.priority in (TaskPriority.HIGH, TaskPriority.URGENT) else 60.0
    if pattern == "moderate":
        return 80.0 if task.priority == TaskPriority.MEDIUM else 65.0
    if pattern == "low":
        return 75.0 if task.priority in (TaskPriority.LOW, TaskPriority.MEDIUM) else 50.0
    return 50.0


def work_pattern_score(task: Task, context: ScoringContext) -> float:
    if context.current_hour in context.most_productive_hours:
        return 90.0

    return {
        "morning": 80.0,
        "afternoon": 70.0,
        "evening": 60.0,
    }.get(context.time_of_day, 40.0)


def task_reasons(
    task: Task,
    urgency: float,
    importance: float,
    analysis: ContextAnalysis | None,
) -> list[str]:
    reasons = []
    if urgency > 80:
        reasons.append("High urgency from priority and staleness")
    if importance > 75:
        reasons.append("Important for project progress")
    if task.priority == TaskPriority.URGENT:
        reasons.append("Marked as urgent")
    if task.status == TaskStatus.IN_PROGRESS:
        reasons.append("Already in progress, keep the momentum")
    if analysis is not None and analysis.focus_area == "tasks" and urgency > 60:
        reasons.append("Aligned with the current focus on tasks")
    return reasons[:MAX_REASONS]


def score_task(
    task: Task,
    context: ScoringContext,
    analysis: ContextAnalysis | None = None,
    weights: PriorityWeights = DEFAULT_WEIGHTS,
) -> PrioritizedTask:
    """Score a single task; never raises on missing fields."""
    urgency = urgency_score(task, context)
    importance = importance_score(task, context)
    recency = recency_score(task, context)
    preference = user_preference_score(task, context)
    fit = work_pattern_score(task, context)

    total = (
        urgency * weights.urgency
        + importance * weights.importance
        + recency * weights.recency
        + preference * weights.user_preference
        + fit * weights.work_pattern
    )

    return PrioritizedTask(
        id=task.id,
        title=task.title,
        priority=task.priority.value,
        status=task.status.value,
        priority_score=round_half_up(clamp_score(total)),
        urgency_score=round_half_up(urgency),
        importance_score=round_half_up(importance),
        reasons=task_reasons(task, urgency, importance, analysis),
    )


def prioritize_tasks(
    tasks: list[Task],
    context: ScoringContext,
    analysis: ContextAnalysis | None = None,
    weights: PriorityWeights = DEFAULT_WEIGHTS,
) -> list[PrioritizedTask]:
    """Score every task, highest first; ties keep snapshot order."""
    scored = [score_task(task, context, analysis, weights) for task in tasks]
    return sorted(scored, key=lambda t: -t.priority_score)


# =============================================================================
# Projects
# =============================================================================


def project_deadline_score(project: Project) -> float:
    progress = project.progress or 0
    if progress > 90:
        return 30.0
    if progress > 70:
        return 60.0
    if progress < 30:
        return 90.0
    return 75.0


def project_progress_score(project: Project) -> float:
    progress = project.progress or 0
    if 20 <= progress <= 80:
        return 90.0
    if progress > 80:
        return 70.0
    return 85.0


def project_impact_score(project: Project, tasks: list[Task]) -> float:
    name = project.name.lower().strip()
    related = sum(
        1 for t in tasks
        if t.project_id == project.id or (name and name in t.title.lower())
    )
    return clamp_score(related * 20 + 40)


def project_reasons(
    project: Project,
    deadline: float,
    progress: float,
    analysis: ContextAnalysis | None,
) -> list[str]:
    reasons = []
    if deadline > 80:
        reasons.append("Deadline close or progress slow")
    if progress > 85:
        reasons.append("In the critical progress zone")
    if project.progress > 80:
        reasons.append("Close to completion")
    elif project.progress < 20:
        reasons.append("Needs an initial push")
    if analysis is not None and analysis.focus_area == "projects":
        reasons.append("Aligned with the current focus on projects")
    return reasons[:MAX_REASONS]


def prioritize_projects(
    projects: list[Project],
    tasks: list[Task],
    analysis: ContextAnalysis | None = None,
) -> list[PrioritizedProject]:
    result = []
    for project in projects:
        deadline = project_deadline_score(project)
        progress = project_progress_score(project)
        impact = project_impact_score(project, tasks)
        total = deadline * 0.4 + progress * 0.3 + impact * 0.3

        result.append(PrioritizedProject(
            id=project.id,
            name=project.name,
            status=project.status.value,
            progress=project.progress,
            priority_score=round_half_up(clamp_score(total)),
            deadline_score=round_half_up(deadline),
            progress_score=round_half_up(progress),
            reasons=project_reasons(project, deadline, progress, analysis),
        ))
    return sorted(result, key=lambda p: -p.priority_score)


# =============================================================================
# Recommendations
# =============================================================================


def generate_focus_recommendations(
    tasks: list[PrioritizedTask],
    projects: list[PrioritizedProject],
    analysis: ContextAnalysis,
) -> list[str]:
    recommendations = []

    top_tasks = tasks[:3]
    if top_tasks:
        recommendations.append("Focus on: " + ", ".join(t.title for t in top_tasks))

    if projects:
        top = projects[0]
        recommendations.append(
            f"Priority project: {top.name} ({round_half_up(top.progress)}% complete)"
        )

    if analysis.urgency_score > 70:
        recommendations.append("High-urgency day: stick to critical tasks only")
    elif analysis.workload_level == "light":
        recommendations.append("Light load: consider moving long-term projects forward")

    return recommendations[:MAX_RECOMMENDATIONS]


_FOCUS_ALLOCATIONS = {
    "tasks": TimeAllocation(tasks=60, projects=20, planning=15, review=5),
    "projects": TimeAllocation(tasks=25, projects=50, planning=15, review=10),
    "planning": TimeAllocation(tasks=20, projects=20, planning=50, review=10),
    "review": TimeAllocation(tasks=20, projects=20, planning=10, review=50),
}


def calculate_time_allocation(analysis: ContextAnalysis) -> TimeAllocation:
    allocation = replace(_FOCUS_ALLOCATIONS.get(analysis.focus_area, TimeAllocation()))

    if analysis.workload_level == "overwhelming":
        allocation.tasks += 20
        allocation.projects -= 10
        allocation.planning -= 5
        allocation.review -= 5

    return TimeAllocation(
        tasks=max(allocation.tasks, 10),
        projects=max(allocation.projects, 10),
        planning=max(allocation.planning, 5),
        review=max(allocation.review, 5),
    )


def prioritize_context(
    context: ScoringContext,
    analysis: ContextAnalysis,
    weights: dict[str, Any] | None = None,
) -> PrioritizedContext:
    """
    Full prioritization pass over a snapshot.

    Args:
        context: Scoring context built from the snapshot
        analysis: Situation analysis for the same snapshot
        weights: Optional partial weight overrides, e.g. {"urgency": 0.5}

    Returns:
        PrioritizedContext with ranked tasks/projects, recommendations and
        a time allocation
    """
    merged = replace(DEFAULT_WEIGHTS, **(weights or {}))

    tasks = prioritize_tasks(context.tasks, context, analysis, merged)
    projects = prioritize_projects(context.projects, context.tasks, analysis)

    return PrioritizedContext(
        prioritized_tasks=tasks,
        prioritized_projects=projects,
        focus_recommendations=generate_focus_recommendations(tasks, projects, analysis),
        time_allocation=calculate_time_allocation(analysis),
    )
