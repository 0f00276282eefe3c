"""Planner document loader (YAML/JSON -> Plan).

Plans are normally handed over in memory. When the planner persists its
backlog instead, documents are parsed, validated against the
ConstructionPlan schema and only then converted.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from colonybuild.errors import PolicyViolationError
from colonybuild.planning.plan import Plan, plan_from_document
from colonybuild.planning.schema_validator import SchemaValidator


@dataclass(frozen=True)
class LoadedDocument:
    path: Path
    data: dict[str, Any]

    @property
    def kind(self) -> str | None:
        k = self.data.get("kind")
        return k if isinstance(k, str) else None


def load_yaml_document(path: Path) -> LoadedDocument:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise PolicyViolationError(f"Failed to parse YAML: {path}: {e}") from e
    if not isinstance(data, dict):
        raise PolicyViolationError(f"Invalid YAML root object in {path} (expected object)")
    return LoadedDocument(path=path, data=data)


def iter_yaml_files(root: Path) -> Iterable[Path]:
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in (".yaml", ".yml", ".json"))


def load_plan_document(doc: dict[str, Any], *, schema_validator: SchemaValidator) -> Plan:
    schema_validator.validate("ConstructionPlan", doc)
    return plan_from_document(doc)


def load_plan_file(path: Path, *, schema_validator: SchemaValidator) -> Plan:
    return load_plan_document(load_yaml_document(path).data, schema_validator=schema_validator)


def load_plans_dir(root: Path, *, schema_validator: SchemaValidator) -> dict[str, Plan]:
    """Load every ConstructionPlan under `root`, keyed by territory."""
    plans: dict[str, Plan] = {}
    sources: dict[str, Path] = {}
    for p in iter_yaml_files(root):
        doc = load_yaml_document(p)
        if doc.kind != "ConstructionPlan":
            continue
        plan = load_plan_document(doc.data, schema_validator=schema_validator)
        if plan.territory in plans:
            raise PolicyViolationError(f"Duplicate ConstructionPlan for territory {plan.territory} ({sources[plan.territory]} and {p})")
        plans[plan.territory] = plan
        sources[plan.territory] = p
    return plans
