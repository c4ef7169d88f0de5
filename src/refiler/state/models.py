"""History entries summarizing completed organization batches."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from refiler.organization.models import OrganizationPlan
from refiler.organization.operations import FileOperation


class OrganizationStatus(str, Enum):
    """Outcome recorded for a history entry."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    UNDO = "undo"


class OrganizationHistoryEntry(BaseModel):
    """One applied (or attempted) organization batch.

    Attributes:
        id: Entry identity used by undo and restore.
        timestamp: When the batch finished.
        directory_path: Directory that was organized.
        files_organized: Files placed by the plan.
        folders_created: Folder suggestions in the plan.
        plan: Plan that was applied, when available.
        status: Outcome of the batch.
        error_message: Failure description for failed batches.
        operations: Operation log the batch produced, creation order.
        is_undone: Whether the batch has since been reversed.
    """

    id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    directory_path: str
    files_organized: int = 0
    folders_created: int = 0
    plan: Optional[OrganizationPlan] = None
    status: OrganizationStatus = OrganizationStatus.COMPLETED
    error_message: Optional[str] = None
    operations: List[FileOperation] = Field(default_factory=list)
    is_undone: bool = False

    @property
    def success(self) -> bool:
        return self.status is OrganizationStatus.COMPLETED

    @property
    def can_undo(self) -> bool:
        """Return whether the entry still has operations that can be reversed."""
        return bool(self.operations) and not self.is_undone


__all__ = ["OrganizationStatus", "OrganizationHistoryEntry"]
