"""Watched folder configuration."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator


class WatchedFolder(BaseModel):
    """A directory monitored for changes.

    Attributes:
        id: Identity used to key watches and debounce timers.
        path: Absolute directory path.
        name: Display name, defaulting to the directory name.
        is_enabled: Disabled folders are never watched.
        auto_organize: Whether a debounced change triggers organization.
        trigger_delay: Quiet period in seconds before a change triggers.
        custom_prompt: Extra planner instructions for this folder.
        temperature: Planner temperature override for this folder.
        plan_file: Plan document used when the folder is organized from the CLI.
        last_triggered: When organization was last triggered for the folder.
    """

    id: UUID = Field(default_factory=uuid4)
    path: str
    name: str = ""
    is_enabled: bool = True
    auto_organize: bool = True
    trigger_delay: float = Field(default=2.0, ge=0)
    custom_prompt: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=1)
    plan_file: Optional[str] = None
    last_triggered: Optional[datetime] = None

    @model_validator(mode="after")
    def _default_name(self) -> "WatchedFolder":
        if not self.name:
            self.name = Path(self.path).name or self.path
        return self

    @property
    def directory(self) -> Path:
        return Path(self.path)

    @property
    def exists(self) -> bool:
        return self.directory.is_dir()


__all__ = ["WatchedFolder"]
