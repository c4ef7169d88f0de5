"""Exclusion rules applied to scanner output."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from refiler.organization.models import FileItem


class ExclusionRuleType(str, Enum):
    """What part of a file an exclusion pattern is matched against."""

    FILE_EXTENSION = "file_extension"
    FILE_NAME = "file_name"
    FOLDER_NAME = "folder_name"
    PATH_CONTAINS = "path_contains"


class ExclusionRule(BaseModel):
    """Case-insensitive rule removing matching files from a scan.

    Attributes:
        id: Rule identity.
        type: Field the pattern is matched against.
        pattern: Extension (without dot) or substring to look for.
        is_enabled: Disabled rules never match.
        description: Optional label shown to users.
    """

    model_config = ConfigDict(extra="forbid")

    id: UUID = Field(default_factory=uuid4)
    type: ExclusionRuleType
    pattern: str
    is_enabled: bool = True
    description: Optional[str] = None

    def matches(self, item: FileItem) -> bool:
        if not self.is_enabled or not self.pattern:
            return False
        pattern = self.pattern.lower()
        if self.type is ExclusionRuleType.FILE_EXTENSION:
            return item.extension.lower() == pattern.lstrip(".")
        if self.type is ExclusionRuleType.FILE_NAME:
            return pattern in item.name.lower()
        if self.type is ExclusionRuleType.FOLDER_NAME:
            return any(pattern in part.lower() for part in item.path.parent.parts)
        return pattern in item.path.as_posix().lower()


def default_rules() -> list[ExclusionRule]:
    """Return the rules installed when none are configured."""
    return [
        ExclusionRule(
            type=ExclusionRuleType.FOLDER_NAME, pattern=".git", description="Git repositories"
        ),
        ExclusionRule(
            type=ExclusionRuleType.FOLDER_NAME, pattern=".svn", description="SVN repositories"
        ),
        ExclusionRule(
            type=ExclusionRuleType.FOLDER_NAME, pattern="node_modules", description="Node modules"
        ),
        ExclusionRule(
            type=ExclusionRuleType.FILE_EXTENSION,
            pattern="app",
            description="Application bundles",
        ),
    ]


def should_exclude(item: FileItem, rules: Iterable[ExclusionRule]) -> bool:
    return any(rule.matches(item) for rule in rules)


def filter_files(files: Iterable[FileItem], rules: Iterable[ExclusionRule]) -> list[FileItem]:
    """Return the files no rule excludes, preserving order."""
    active = [rule for rule in rules if rule.is_enabled]
    return [item for item in files if not should_exclude(item, active)]


__all__ = [
    "ExclusionRuleType",
    "ExclusionRule",
    "default_rules",
    "should_exclude",
    "filter_files",
]
