"""
Task Tools - Task, project and work-session records

The persistence layer lives in the host application; this package only
describes the snapshot records it hands over and the hierarchy queries the
notification checks rely on.

Components:
    models.py: Task, Project, WorkSession dataclasses
    hierarchy.py: main task -> subtask -> microtask rollup and activity queries
"""

from taskpulse.tasks.models import Project, ProjectStatus, Task, TaskPriority, TaskStatus, WorkSession

__all__ = ["Project", "ProjectStatus", "Task", "TaskPriority", "TaskStatus", "WorkSession"]
