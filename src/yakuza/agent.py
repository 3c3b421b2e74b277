"""Agent contracts: master plan, task definition registry and setup hooks."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from yakuza.jobs.errors import InvalidArgumentError
from yakuza.jobs.models import Plan, TaskSpec, parse_plan

logger = logging.getLogger(__name__)

TaskBuilder = Callable[[Mapping[str, Any]], Iterable[Any]]
SetupHook = Callable[[dict[str, Any]], None]


@dataclass(slots=True)
class TaskDefinition:
    """Builds runnable task instances for one task id."""

    task_id: str
    builder: TaskBuilder

    def build(self, params: Mapping[str, Any]) -> list[Any]:
        """Return the task instances for ``params``; may be empty, never ``None``."""

        produced = self.builder(params)
        if produced is None or isinstance(produced, (str, bytes, Mapping)):
            raise TypeError(
                f"Builder for task {self.task_id!r} must return a sequence of tasks, "
                f"got {type(produced).__name__}",
            )
        try:
            return list(produced)
        except TypeError as error:
            raise TypeError(
                f"Builder for task {self.task_id!r} returned a non-iterable "
                f"{type(produced).__name__}",
            ) from error


@runtime_checkable
class AgentLike(Protocol):
    """What a job reads from its agent."""

    id: str

    @property
    def plan(self) -> Sequence[Sequence[TaskSpec]]:
        """Master plan: ordered synchronization groups."""
        raise NotImplementedError

    @property
    def task_definitions(self) -> Mapping[str, TaskDefinition]:
        """Registry of task definitions keyed by task id."""
        raise NotImplementedError

    def apply_setup(self) -> None:
        """Run setup hooks once before a job computes its plan."""
        raise NotImplementedError


class Agent:
    """In-memory agent holding a master plan and task definitions."""

    def __init__(self, agent_id: str, *, plan: object = ()) -> None:
        if not isinstance(agent_id, str) or not agent_id:
            raise InvalidArgumentError("Agent id must be a non-empty string")
        self.id = agent_id
        self._plan: Plan = parse_plan(plan)
        self._task_definitions: dict[str, TaskDefinition] = {}
        self._setup_hooks: list[SetupHook] = []
        self.config: dict[str, Any] = {}

    @property
    def plan(self) -> Plan:
        return self._plan

    @property
    def task_definitions(self) -> Mapping[str, TaskDefinition]:
        return self._task_definitions

    def define(self, task_id: str, builder: TaskBuilder) -> Agent:
        """Register (or replace) the builder for ``task_id``."""

        if not isinstance(task_id, str) or not task_id:
            raise InvalidArgumentError("Task id must be a non-empty string")
        if not callable(builder):
            raise InvalidArgumentError(f"Builder for task {task_id!r} must be callable")
        if task_id in self._task_definitions:
            logger.debug("Agent %s replaces task definition %s", self.id, task_id)
        self._task_definitions[task_id] = TaskDefinition(task_id=task_id, builder=builder)
        return self

    def setup(self, hook: SetupHook) -> Agent:
        """Add a hook that may adjust ``config`` before each job run."""

        if not callable(hook):
            raise InvalidArgumentError("Setup hook must be callable")
        self._setup_hooks.append(hook)
        return self

    def apply_setup(self) -> None:
        for hook in self._setup_hooks:
            hook(self.config)
        logger.debug("Agent %s applied %d setup hook(s)", self.id, len(self._setup_hooks))


@dataclass(slots=True)
class StaticTask:
    """Minimal task instance carrying the params it was built with."""

    task_id: str
    params: dict[str, Any] = field(default_factory=dict)
    index: int = 0
