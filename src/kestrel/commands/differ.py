"""One-directional structural diff between two normalised values."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _differs(candidate: Any, baseline: Any) -> bool:
    # True == 1 in Python; a flag flipping to an integer is still a change.
    if isinstance(candidate, bool) != isinstance(baseline, bool):
        return True
    return candidate != baseline


def find_differences(candidate: Any, baseline: Any) -> Any:
    """Return the part of ``candidate`` that differs from ``baseline``, or None.

    - Primitives (and None) are returned whole when they differ.
    - Lists are diffed position by position when both sides have the same
      length; otherwise the candidate list is returned whole. A list diff keeps
      ``None`` at unchanged positions.
    - Mappings are diffed key by key over the candidate's keys only, so keys
      present only in the baseline never show up in the result.
    """
    if isinstance(candidate, list):
        if not isinstance(baseline, list) or len(candidate) != len(baseline):
            return candidate
        differences = [find_differences(item, other) for item, other in zip(candidate, baseline)]
        return differences if any(diff is not None for diff in differences) else None

    if isinstance(candidate, Mapping):
        baseline_map = baseline if isinstance(baseline, Mapping) else {}
        patch = {}
        for key, value in candidate.items():
            diff = find_differences(value, baseline_map.get(key))
            if diff is not None:
                patch[key] = diff
        return patch or None

    return candidate if _differs(candidate, baseline) else None
