"""Structural checks run on a plan before it reaches the executor."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import PlanValidationError
from .executor import DEFAULT_MAX_DEPTH
from .models import FolderSuggestion, OrganizationPlan
from .paths import is_within, normalize


def validate_plan(
    plan: OrganizationPlan,
    base: Path,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    """Ensure ``plan`` only references real files under ``base``.

    Args:
        plan: Plan produced by the external planner.
        base: Directory the plan will be applied to.
        max_depth: Deepest folder nesting accepted.

    Raises:
        PlanValidationError: Listing every problem found.
    """

    root = normalize(base)
    if not root.is_dir():
        raise PlanValidationError(f"Base directory does not exist: {root}", path=root)

    problems: list[str] = []
    placed: set[Path] = set()

    stack: list[tuple[FolderSuggestion, str, int]] = [
        (suggestion, suggestion.folder_name, 1) for suggestion in reversed(plan.suggestions)
    ]
    while stack:
        suggestion, label, depth = stack.pop()
        if not _is_component(suggestion.folder_name):
            problems.append(f"Invalid folder name {suggestion.folder_name!r}")
        if depth > max_depth:
            problems.append(f"Folder '{label}' is nested deeper than {max_depth} levels")
            continue

        for item in suggestion.files:
            source = normalize(item.path if item.path.is_absolute() else root / item.path)
            if not is_within(source, root) or source == root:
                problems.append(f"{item.display_name} is outside {root}")
            elif not source.is_file():
                problems.append(f"{item.display_name} does not exist at {source}")
            if source in placed:
                problems.append(f"{item.display_name} is placed in more than one folder")
            placed.add(source)

        for mapping in suggestion.rename_mappings:
            if mapping.has_rename and not _is_component(mapping.suggested_name.strip()):
                problems.append(
                    f"Invalid rename {mapping.original_file.display_name!r} -> "
                    f"{mapping.suggested_name!r}"
                )

        stack.extend(
            (child, f"{label}/{child.folder_name}", depth + 1)
            for child in reversed(suggestion.subfolders)
        )

    if problems:
        raise PlanValidationError("Plan is invalid: " + "; ".join(problems), path=root)


def _is_component(name: str) -> bool:
    stripped = name.strip()
    if not stripped or stripped in {".", ".."}:
        return False
    return not any(separator in stripped for separator in {"/", "\\", os.sep, "\0"})


__all__ = ["validate_plan"]
