"""Expansion of plan groups into execution blocks."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from yakuza.agent import AgentLike
from yakuza.jobs.errors import UnknownTaskError
from yakuza.jobs.models import ExecutionBlock, TaskSpec

logger = logging.getLogger(__name__)


def build_tasks(agent: AgentLike, spec: TaskSpec, params: Mapping[str, Any]) -> list[Any]:
    """Run the agent's builder for one spec."""

    definition = agent.task_definitions.get(spec.task_id)
    if definition is None:
        raise UnknownTaskError(
            message=f"Task with id {spec.task_id} does not exist in agent {agent.id}",
            task_id=spec.task_id,
            agent_id=agent.id,
        )
    return definition.build(dict(params))


def build_execution_block(
    agent: AgentLike,
    group: Sequence[TaskSpec],
    params: Mapping[str, Any],
    *,
    group_index: int = 0,
) -> ExecutionBlock:
    """Expand one plan group into an execution block.

    Instances of a self-synchronous spec form a single chain whose head is the
    only top-level unit; every other instance becomes its own head.
    """

    block = ExecutionBlock(group_index=group_index)
    for spec in group:
        previous: int | None = None
        for task in build_tasks(agent, spec, params):
            if spec.self_sync:
                previous = block.add(task, after=previous)
            else:
                block.add(task)
    logger.debug(
        "Built block %d: %d unit(s), %d head(s)",
        group_index,
        len(block.tasks),
        len(block.heads),
    )
    return block
