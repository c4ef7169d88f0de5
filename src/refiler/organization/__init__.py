"""Plan execution, operation logging and reversal."""

from .errors import (
    FileSystemError,
    InvalidPathError,
    NoOperationToUndoError,
    PathAlreadyExistsError,
    PathNotFoundError,
    PermissionDeniedError,
    PlanValidationError,
    RevertInProgressError,
)
from .executor import OperationExecutor
from .guard import RevertGuard
from .manager import FileSystemManager, ManagerRegistry
from .models import FileItem, FolderSuggestion, OrganizationPlan, RenameMapping
from .operations import FileOperation, OperationMetadata, OperationType
from .paths import unique_path
from .reversal import ReversalEngine, ReversalResult
from .validation import validate_plan

__all__ = [
    "FileItem",
    "FileOperation",
    "FileSystemError",
    "FileSystemManager",
    "FolderSuggestion",
    "InvalidPathError",
    "ManagerRegistry",
    "NoOperationToUndoError",
    "OperationExecutor",
    "OperationMetadata",
    "OperationType",
    "OrganizationPlan",
    "PathAlreadyExistsError",
    "PathNotFoundError",
    "PermissionDeniedError",
    "PlanValidationError",
    "RenameMapping",
    "ReversalEngine",
    "ReversalResult",
    "RevertGuard",
    "RevertInProgressError",
    "unique_path",
    "validate_plan",
]
