"""Small utility helpers used across the scheduler."""

from __future__ import annotations

from typing import Any

from colonybuild.errors import PolicyViolationError


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def deep_get(d: dict[str, Any], path: list[str]) -> Any:
    cur: Any = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            raise KeyError("missing path: " + ".".join(path))
        cur = cur[k]
    return cur


def as_dict(v: Any) -> dict[str, Any]:
    # A missing YAML section reads as None; treat it as empty.
    if v is None:
        return {}
    if isinstance(v, dict):
        return v
    raise PolicyViolationError("Expected object")


def as_list(v: Any) -> list[Any]:
    if v is None:
        return []
    if isinstance(v, list):
        return v
    raise PolicyViolationError("Expected list")
