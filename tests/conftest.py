"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from yakuza.agent import Agent, StaticTask


def fan_out(task_id: str, count: int) -> Callable[[Mapping[str, Any]], list[StaticTask]]:
    """Builder producing ``count`` static tasks for ``task_id``."""

    def _build(params: Mapping[str, Any]) -> list[StaticTask]:
        return [StaticTask(task_id=task_id, params=dict(params), index=i) for i in range(count)]

    return _build


@pytest.fixture()
def make_agent():
    """Create an agent whose every plan task fans out to the given instance count."""

    def _make(plan: list[list[Any]], counts: dict[str, int] | None = None) -> Agent:
        agent = Agent("test-agent", plan=plan)
        counts = counts or {}
        for group in agent.plan:
            for spec in group:
                agent.define(spec.task_id, fan_out(spec.task_id, counts.get(spec.task_id, 1)))
        return agent

    return _make
