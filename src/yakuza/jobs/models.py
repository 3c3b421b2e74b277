"""Domain models for plans, execution blocks and the job lifecycle."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from yakuza.jobs.errors import InvalidArgumentError, JobStateError


class JobState(str, Enum):
    """Lifecycle states for a job."""

    NOT_STARTED = "not_started"
    PREPARING = "preparing"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class JobEventKind(str, Enum):
    """Messages that drive job state transitions."""

    START = "start"
    BLOCK_APPLIED = "block_applied"
    BLOCK_COMPLETED = "block_completed"


@dataclass(frozen=True, slots=True)
class JobEvent:
    """One queued lifecycle message."""

    kind: JobEventKind
    block_index: int | None = None


@dataclass(frozen=True, slots=True)
class TaskSpec:
    """Declarative reference to a task inside a plan group."""

    task_id: str
    sync: bool = False
    self_sync: bool = False

    @classmethod
    def from_raw(cls, raw: str | Mapping[str, Any] | TaskSpec) -> TaskSpec:
        """Parse a plan node given as a bare task id or a mapping.

        Mappings may use either ``task_id``/``self_sync`` or the camelCase
        ``taskId``/``selfSync`` keys found in agent plan files.
        """

        if isinstance(raw, TaskSpec):
            return raw
        if isinstance(raw, str):
            task_id: object = raw
            sync: object = False
            self_sync: object = False
        elif isinstance(raw, Mapping):
            task_id = raw.get("task_id", raw.get("taskId"))
            sync = raw.get("sync", False)
            self_sync = raw.get("self_sync", raw.get("selfSync", False))
        else:
            raise InvalidArgumentError(f"Plan task must be a string or an object, got {raw!r}")

        if not isinstance(task_id, str) or not task_id:
            raise InvalidArgumentError(f"Plan task id must be a non-empty string, got {task_id!r}")
        return cls(task_id=task_id, sync=bool(sync), self_sync=bool(self_sync))


PlanGroup = tuple[TaskSpec, ...]
Plan = tuple[PlanGroup, ...]


def parse_plan(raw_groups: object) -> Plan:
    """Normalize raw plan groups into immutable TaskSpec tuples."""

    if not isinstance(raw_groups, (list, tuple)):
        raise InvalidArgumentError("Plan must be a list of groups")
    groups: list[PlanGroup] = []
    for raw_group in raw_groups:
        if not isinstance(raw_group, (list, tuple)):
            raise InvalidArgumentError(f"Plan group must be a list, got {raw_group!r}")
        groups.append(tuple(TaskSpec.from_raw(item) for item in raw_group))
    return tuple(groups)


@dataclass(frozen=True, slots=True)
class ExecutionUnit:
    """View over one arena slot of an execution block."""

    block: ExecutionBlock = field(repr=False)
    index: int

    @property
    def task(self) -> Any:
        return self.block.tasks[self.index]

    @property
    def next(self) -> ExecutionUnit | None:
        successor = self.block.successors[self.index]
        if successor is None:
            return None
        return ExecutionUnit(self.block, successor)

    @property
    def completed(self) -> bool:
        return self.index in self.block.completed


@dataclass(slots=True, eq=False)
class ExecutionBlock:
    """Executable expansion of one effective plan group.

    Task instances live in an arena (``tasks``); chains are encoded as
    successor indices.  ``heads`` lists the top-level units in build order,
    chained followers are only reachable through ``successors``.
    """

    group_index: int
    tasks: list[Any] = field(default_factory=list)
    successors: list[int | None] = field(default_factory=list)
    predecessors: list[int | None] = field(default_factory=list)
    heads: list[int] = field(default_factory=list)
    completed: set[int] = field(default_factory=set)

    def add(self, task: Any, *, after: int | None = None) -> int:
        """Store a task instance; link it behind ``after`` or make it a head."""

        index = len(self.tasks)
        self.tasks.append(task)
        self.successors.append(None)
        self.predecessors.append(after)
        if after is None:
            self.heads.append(index)
        else:
            if self.successors[after] is not None:
                raise InvalidArgumentError(f"Unit {after} already has a successor")
            self.successors[after] = index
        return index

    @property
    def units(self) -> list[ExecutionUnit]:
        """Top-level units (chain heads)."""
        return [ExecutionUnit(self, index) for index in self.heads]

    def chain(self, head: int) -> list[int]:
        indices: list[int] = []
        cursor: int | None = head
        while cursor is not None:
            indices.append(cursor)
            cursor = self.successors[cursor]
        return indices

    def is_ready(self, index: int) -> bool:
        if index in self.completed:
            return False
        predecessor = self.predecessors[index]
        return predecessor is None or predecessor in self.completed

    def ready_units(self) -> list[ExecutionUnit]:
        """Units that may be dispatched now: not done, predecessor done."""
        return [
            ExecutionUnit(self, index) for index in range(len(self.tasks)) if self.is_ready(index)
        ]

    def mark_completed(self, index: int) -> None:
        if not 0 <= index < len(self.tasks):
            raise InvalidArgumentError(f"Block {self.group_index} has no unit {index}")
        if index in self.completed:
            raise JobStateError(f"Unit {index} of block {self.group_index} is already complete")
        if not self.is_ready(index):
            raise JobStateError(
                f"Unit {index} of block {self.group_index} completed before its predecessor",
            )
        self.completed.add(index)

    @property
    def is_complete(self) -> bool:
        return len(self.completed) == len(self.tasks)

    def to_dict(self) -> dict[str, Any]:
        """Plain snapshot for inspection and logging."""

        return {
            "group_index": self.group_index,
            "heads": list(self.heads),
            "successors": list(self.successors),
            "completed": sorted(self.completed),
            "size": len(self.tasks),
        }
