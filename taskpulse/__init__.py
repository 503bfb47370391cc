"""TaskPulse - proactive notifications and priority scoring for task tracking.

Packages:
    tasks/: Task, Project and WorkSession records plus hierarchy helpers
    scoring/: Context analysis and task/project prioritization
    notifications/: Triggers, dedup, quiet hours, manager and scheduler
    insights/: Validation of LLM-generated insight payloads

The host application builds one AppContext (taskpulse.app) at startup and
tears it down on shutdown.
"""

from pathlib import Path

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"

__version__ = "0.1.0"

__all__ = ["PROJECT_ROOT", "ARGS_DIR", "__version__"]
