"""Configuration models describing Refiler settings."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from refiler.scanning.rules import ExclusionRule, default_rules


class RefilerBaseModel(BaseModel):
    """Shared configuration for Refiler settings models."""

    model_config = ConfigDict(extra="forbid")


class ExecutionSettings(RefilerBaseModel):
    """Options for the mutation engine.

    Attributes:
        max_depth: Deepest folder nesting accepted from a plan.
        trash_dir: Folder that deleted files are moved into instead of being
            removed permanently. ``None`` deletes permanently.
    """

    max_depth: int = Field(default=32, ge=1)
    trash_dir: Optional[str] = None


class ScanSettings(RefilerBaseModel):
    """Options for directory scanning.

    Attributes:
        include_hidden: Whether dotfiles and files in hidden folders are scanned.
        follow_symlinks: Whether symbolic links to files are included.
        exclusions: Rules removing files from scan results.
    """

    include_hidden: bool = False
    follow_symlinks: bool = False
    exclusions: List[ExclusionRule] = Field(default_factory=default_rules)


class WatchSettings(RefilerBaseModel):
    """Options for watched-folder automation.

    Attributes:
        default_trigger_delay: Quiet period in seconds used for newly added folders.
        recursive: Whether events in subfolders also trigger organization.
        folders_file: YAML file listing watched folders.
    """

    default_trigger_delay: float = Field(default=2.0, gt=0)
    recursive: bool = True
    folders_file: str = "~/.refiler/watched.yaml"


class HistorySettings(RefilerBaseModel):
    """Options for the organization history log.

    Attributes:
        path: JSON file holding history entries.
        max_entries: Oldest entries beyond this count are dropped.
    """

    path: str = "~/.refiler/history.json"
    max_entries: int = Field(default=100, ge=1)


class LoggingSettings(RefilerBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file; rotated when it grows past ``max_size_mb``.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(RefilerBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
        history_limit: Default number of history entries to display.
    """

    quiet_default: bool = False
    summary_default: bool = False
    history_limit: int = 10


class RefilerConfig(RefilerBaseModel):
    """Top-level configuration struct for Refiler."""

    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "RefilerBaseModel",
    "ExecutionSettings",
    "ScanSettings",
    "WatchSettings",
    "HistorySettings",
    "LoggingSettings",
    "CLIOptions",
    "RefilerConfig",
]
