"""Directory scanning and exclusion rules."""

from .discovery import DirectoryScanner
from .rules import ExclusionRule, ExclusionRuleType, default_rules, filter_files

__all__ = [
    "DirectoryScanner",
    "ExclusionRule",
    "ExclusionRuleType",
    "default_rules",
    "filter_files",
]
