"""File contract for agent plan documents used by the CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from yakuza.jobs.models import Plan, parse_plan


@dataclass(slots=True)
class PlanDocument:
    """Agent id, master plan and per-task instance counts loaded from JSON."""

    agent_id: str
    plan: Plan
    instances: dict[str, int] = field(default_factory=dict)


def load_json(path: Path) -> dict[str, Any]:
    """Load JSON document and validate top-level object type."""

    payload = json.loads(path.read_text("utf-8"))
    if not isinstance(payload, dict):
        raise TypeError(f"Expected JSON object in {path}")
    return payload


def read_plan_document(path: Path) -> PlanDocument:
    """Deserialize and validate a plan document.

    Expected shape::

        {"agent": "shop", "plan": [["login"], [{"taskId": "page", "selfSync": true}]],
         "instances": {"page": 3}}
    """

    raw = load_json(path)
    agent_id = raw.get("agent", path.stem)
    raw_instances = raw.get("instances", {})
    if not isinstance(agent_id, str) or not agent_id.strip():
        raise ValueError("plan.agent must be a non-empty string")
    if "plan" not in raw:
        raise ValueError("plan document must contain a 'plan' array")
    if not isinstance(raw_instances, dict):
        raise TypeError("plan.instances must be an object")

    instances: dict[str, int] = {}
    for task_id, count in raw_instances.items():
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise ValueError(f"plan.instances[{task_id!r}] must be a non-negative integer")
        instances[task_id] = count
    return PlanDocument(agent_id=agent_id, plan=parse_plan(raw["plan"]), instances=instances)
