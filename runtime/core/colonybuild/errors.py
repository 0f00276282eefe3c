"""Core error types.

A scheduling pass never raises for expected conditions: per-task rejections
are reported as `Skipped` decisions, not exceptions. These types cover the
fail-closed edges only (configuration, planner documents, world lookups).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


class ColonyBuildError(Exception):
    """Base class for colonybuild errors."""


@dataclass(frozen=True)
class SchemaViolation:
    path: str
    message: str


class SchemaValidationError(ColonyBuildError):
    def __init__(self, kind: str, violations: Iterable[SchemaViolation]):
        self.kind = kind
        self.violations = list(violations)
        super().__init__(f"{kind} failed schema validation ({len(self.violations)} violation(s))")


class NotFoundError(ColonyBuildError):
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")


class PolicyViolationError(ColonyBuildError):
    def __init__(self, message: str, details: Any | None = None):
        self.details = details
        super().__init__(message)
