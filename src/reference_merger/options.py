"""Merge configuration."""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

_TRUTHY = {"1", "true", "yes", "on", "y"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


@dataclass(frozen=True)
class MergeOptions:
    """Switches controlling matching, ordering and output rewriting."""

    preserve_ids: bool = True
    renumber_internal: bool = True
    include_unmatched_updates: bool = False
    fuzzy_matching: bool = False
    auto_sort: bool = True
    ampersand_normalization: bool = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "MergeOptions":
        """Build options from form fields or parsed arguments, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {key: _as_bool(value) for key, value in values.items() if key in known}
        return cls(**kwargs)
