"""
Tool: TaskPulse Application Context
Purpose: Wire config, manager, triggers and scheduler for one host process

The host builds one AppContext at startup, passes it to whatever needs the
notification surface, and awaits shutdown() on teardown. Nothing in the
package keeps module-level state.

Usage:
    python -m taskpulse.app --action check --snapshot snapshot.json
    python -m taskpulse.app --action prioritize --snapshot snapshot.json
    python -m taskpulse.app --action config

    # In a host application
    app = AppContext.create(provider, delivery_handler=send_push)
    await app.start()
    ...
    await app.shutdown()
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from taskpulse.logging_config import get_logger, setup_logging
from taskpulse.notifications.checks import default_checks, run_productivity_analysis, run_task_analysis
from taskpulse.notifications.config import TaskPulseConfig, load_config
from taskpulse.notifications.manager import DeliveryHandler, NotificationManager
from taskpulse.notifications.models import Snapshot
from taskpulse.notifications.scheduler import DeliveryScheduler, SnapshotProvider
from taskpulse.notifications.triggers import TriggerRegistry
from taskpulse.scoring import analyze_situation, build_context, prioritize_context

logger = get_logger(__name__)


@dataclass
class AppContext:
    config: TaskPulseConfig
    manager: NotificationManager
    registry: TriggerRegistry
    scheduler: DeliveryScheduler

    @classmethod
    def create(
        cls,
        snapshot_provider: SnapshotProvider,
        delivery_handler: DeliveryHandler | None = None,
        config: TaskPulseConfig | None = None,
        clock=datetime.now,
    ) -> "AppContext":
        config = config or load_config()
        manager = NotificationManager(config.notifications, clock=clock)
        registry = TriggerRegistry()
        scheduler = DeliveryScheduler(
            manager,
            snapshot_provider,
            default_checks(registry),
            config=config.scheduler,
            delivery_handler=delivery_handler,
        )
        return cls(config=config, manager=manager, registry=registry, scheduler=scheduler)

    async def start(self) -> None:
        self.scheduler.start()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        logger.info("app_shutdown", stats=self.manager.get_stats())

    async def _run_manual(self, analysis) -> list[dict[str, Any]]:
        """
        Run a manual analysis with the recurring timers paused.

        The timers are paused so the recurring tick cannot produce the same
        messages, then resumed after the grace delay if they were running or
        already waiting to resume.
        """
        resume = self.scheduler.is_running or self.scheduler.resume_pending
        self.scheduler.pause_for_testing()
        try:
            snapshot = await self.scheduler.fetch_snapshot()
            created = await analysis(snapshot, self.manager)
        finally:
            if resume:
                self.scheduler.resume_after_testing()
        return [n.to_dict() for n in created]

    async def analyze_now(self) -> list[dict[str, Any]]:
        """Manual "analyze my tasks" request."""
        return await self._run_manual(run_task_analysis)

    async def analyze_productivity_now(self) -> list[dict[str, Any]]:
        """Manual "analyze my productivity" request."""
        return await self._run_manual(run_productivity_analysis)


# =============================================================================
# CLI
# =============================================================================

def _load_snapshot(path: str) -> Snapshot:
    with open(path) as f:
        return Snapshot.from_dict(json.load(f))


async def _run_checks(snapshot: Snapshot, config: TaskPulseConfig) -> dict[str, Any]:
    app = AppContext.create(lambda: snapshot, config=config)
    report = await app.scheduler.run_once()
    await app.shutdown()
    return {
        "success": report is not None and report.error is None,
        "report": report.to_dict() if report else None,
        "pending": [n.to_dict() for n in app.manager.get_pending_notifications()],
    }


def _prioritize(snapshot: Snapshot) -> dict[str, Any]:
    context = build_context(snapshot.tasks, snapshot.sessions, snapshot.projects)
    result = prioritize_context(context, analyze_situation(context))
    return {"success": True, **asdict(result)}


def main():
    parser = argparse.ArgumentParser(
        description="TaskPulse - proactive notifications and task prioritization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run every check once against a snapshot and list queued notifications
    python -m taskpulse.app --action check --snapshot snapshot.json

    # Rank tasks and projects
    python -m taskpulse.app --action prioritize --snapshot snapshot.json

    # Show the effective configuration
    python -m taskpulse.app --action config --config args/notifications.yaml
        """,
    )

    parser.add_argument(
        "--action",
        required=True,
        choices=["check", "prioritize", "config"],
        help="Action to perform",
    )
    parser.add_argument("--snapshot", help="JSON file with tasks, sessions, projects, insights")
    parser.add_argument("--config", help="Config YAML (default: args/notifications.yaml)")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")

    args = parser.parse_args()
    setup_logging(level=args.log_level)

    config = load_config(Path(args.config) if args.config else None)

    if args.action == "config":
        result = {"success": True, "config": config.model_dump()}
    else:
        if not args.snapshot:
            print(json.dumps({"success": False, "error": f"--snapshot required for {args.action} action"}))
            sys.exit(1)
        try:
            snapshot = _load_snapshot(args.snapshot)
        except (OSError, ValueError, TypeError, KeyError) as e:
            print(json.dumps({"success": False, "error": f"Invalid snapshot: {e}"}))
            sys.exit(1)

        if args.action == "check":
            result = asyncio.run(_run_checks(snapshot, config))
        else:
            result = _prioritize(snapshot)

    print(json.dumps(result, indent=2, default=str))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
