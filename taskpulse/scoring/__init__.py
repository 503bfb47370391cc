"""Priority scoring components."""

from taskpulse.scoring.context import (
    ContextAnalysis,
    ScoringContext,
    analyze_situation,
    build_context,
    productivity_ratio,
)
from taskpulse.scoring.prioritizer import (
    PriorityWeights,
    PrioritizedContext,
    PrioritizedProject,
    PrioritizedTask,
    prioritize_context,
    prioritize_tasks,
    score_task,
)

__all__ = [
    "ContextAnalysis",
    "ScoringContext",
    "analyze_situation",
    "build_context",
    "productivity_ratio",
    "PriorityWeights",
    "PrioritizedContext",
    "PrioritizedProject",
    "PrioritizedTask",
    "prioritize_context",
    "prioritize_tasks",
    "score_task",
]
