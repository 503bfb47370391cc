from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from taskpulse import ARGS_DIR
from taskpulse.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_PATH = ARGS_DIR / "notifications.yaml"
CONFIG_ENV = "TASKPULSE_CONFIG"


class ConfigError(ValueError):
    """Raised when a configuration update is out of range."""


# =============================================================================
# NotificationConfig (args/notifications.yaml: notifications)
# =============================================================================

class PrioritiesConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    enable_high: bool = Field(default=True)
    enable_medium: bool = Field(default=True)
    enable_low: bool = Field(default=True)


class NotificationConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    enable_productivity_reminders: bool = Field(default=True)
    enable_task_health_alerts: bool = Field(default=True)
    enable_deadline_warnings: bool = Field(default=True)
    enable_achievement_celebrations: bool = Field(default=True)
    quiet_hours_start: int = Field(default=22, ge=0, le=23)
    quiet_hours_end: int = Field(default=8, ge=0, le=23)
    max_notifications_per_hour: int = Field(default=5, ge=0)
    dedup_window_minutes: int = Field(default=5, ge=0)
    daily_goal_tasks: int = Field(default=3, ge=1)
    priorities: PrioritiesConfig = Field(default_factory=PrioritiesConfig)


# =============================================================================
# SchedulerConfig (args/notifications.yaml: scheduler)
# =============================================================================

class SchedulerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    initial_delay_seconds: float = Field(default=10.0, ge=0)
    interval_seconds: float = Field(default=300.0, gt=0)
    resume_grace_seconds: float = Field(default=5.0, ge=0)


class TaskPulseConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_keys(data: Any) -> Any:
    """Convert camelCase keys (quietHoursStart, enableHigh) to snake_case."""
    if isinstance(data, dict):
        return {
            _CAMEL_BOUNDARY.sub("_", str(key)).lower(): normalize_keys(value)
            for key, value in data.items()
        }
    return data


def apply_config_update(current: NotificationConfig, partial: dict[str, Any]) -> NotificationConfig:
    """
    Merge a partial update into a config and validate the result.

    Nested `priorities` are merged key by key.

    Raises:
        ConfigError: the merged config fails validation
    """
    updates = normalize_keys(partial)
    merged = current.model_dump()

    priorities = updates.pop("priorities", None)
    if priorities is not None:
        if not isinstance(priorities, dict):
            raise ConfigError("priorities must be a mapping")
        merged["priorities"] = {**merged["priorities"], **priorities}

    merged.update(updates)

    try:
        return NotificationConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def load_config(path: Path | None = None) -> TaskPulseConfig:
    """
    Load config from YAML, falling back to defaults.

    The file is resolved from the explicit path, then $TASKPULSE_CONFIG, then
    args/notifications.yaml at the project root. That last one only exists in
    a source checkout; installed packages should set the env var.
    """
    yaml_path = Path(path or os.getenv(CONFIG_ENV) or CONFIG_PATH)

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            logger.info("config_file_missing", path=str(yaml_path))
            raw = {}

        return TaskPulseConfig.model_validate(normalize_keys(raw))
    except Exception as e:
        logger.warning("config_validation_failed", path=str(yaml_path), error=str(e))
        return TaskPulseConfig()
