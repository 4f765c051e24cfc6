"""
JSON merge patch (RFC 7386) helpers.

create_merge_patch() diffs a snapshot against an updated copy so the write
carries only what changed. Lists are atomic in a merge patch: a changed list is
sent whole, which is how a device list is always replaced in one piece.
"""

import copy
from typing import Any


def create_merge_patch(base: dict[str, Any], updated: dict[str, Any]) -> dict[str, Any]:
    """Return the merge patch that turns base into updated."""
    patch: dict[str, Any] = {}

    for key in base:
        if key not in updated:
            patch[key] = None

    for key, value in updated.items():
        if key not in base:
            patch[key] = copy.deepcopy(value)
            continue

        old = base[key]
        if isinstance(old, dict) and isinstance(value, dict):
            sub = create_merge_patch(old, value)
            if sub:
                patch[key] = sub
        elif old != value:
            patch[key] = copy.deepcopy(value)

    return patch


def apply_merge_patch(target: Any, patch: Any) -> Any:
    """Apply a merge patch to target and return the result (target is not modified)."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)

    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result
