"""Job lifecycle controller and execution queue."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Mapping
from typing import Any

from yakuza.agent import AgentLike
from yakuza.jobs.blocks import build_execution_block
from yakuza.jobs.errors import InvalidArgumentError, JobStateError, PlanExhaustedError
from yakuza.jobs.models import (
    ExecutionBlock,
    ExecutionUnit,
    JobEvent,
    JobEventKind,
    JobState,
    Plan,
)
from yakuza.jobs.plan import filter_plan

logger = logging.getLogger(__name__)

BlockListener = Callable[["Job", ExecutionBlock], None]

# Valid (state, event) pairs.  Anything else is a programming error.
_TRANSITIONS: dict[tuple[JobState, JobEventKind], str] = {
    (JobState.NOT_STARTED, JobEventKind.START): "_on_start",
    (JobState.RUNNING, JobEventKind.BLOCK_APPLIED): "_on_block_applied",
    (JobState.RUNNING, JobEventKind.BLOCK_COMPLETED): "_on_block_completed",
}


class Job:
    """Runs the enqueued subset of an agent's plan, one group at a time.

    Lifecycle messages are queued and drained by a single dispatcher, so a
    block listener that completes units synchronously, or worker threads
    reporting completions, never re-enter a transition midway.  The listener
    itself runs outside the job lock.
    """

    def __init__(
        self,
        uid: str,
        scraper: Any,
        agent: AgentLike,
        *,
        on_block_applied: BlockListener | None = None,
    ) -> None:
        if not isinstance(uid, str) or not uid:
            raise InvalidArgumentError("Job uid must be a valid string")
        self._uid = uid
        self._scraper = scraper
        self._agent = agent
        self._on_block_applied_listener = on_block_applied

        self._state = JobState.NOT_STARTED
        self._started = False
        self._params: dict[str, Any] = {}
        self._enqueued_task_ids: list[str] = []
        self._plan: Plan | None = None
        self._plan_cursor = -1
        self._execution_queue: list[ExecutionBlock] = []

        self._events: deque[JobEvent] = deque()
        self._lock = threading.RLock()
        self._dispatching = False

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def agent(self) -> AgentLike:
        return self._agent

    @property
    def scraper(self) -> Any:
        return self._scraper

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def started(self) -> bool:
        return self._started

    @property
    def params_snapshot(self) -> dict[str, Any]:
        return dict(self._params)

    @property
    def enqueued_task_ids(self) -> tuple[str, ...]:
        return tuple(self._enqueued_task_ids)

    @property
    def plan(self) -> Plan | None:
        """Effective plan, available once the run has been prepared."""
        return self._plan

    @property
    def plan_cursor(self) -> int:
        return self._plan_cursor

    @property
    def execution_queue(self) -> tuple[ExecutionBlock, ...]:
        return tuple(self._execution_queue)

    @property
    def current_block(self) -> ExecutionBlock | None:
        return self._execution_queue[-1] if self._execution_queue else None

    def params(self, params: Mapping[str, Any]) -> Job:
        """Shallow-merge ``params`` into the parameters handed to task builders."""

        if not isinstance(params, Mapping):
            raise InvalidArgumentError("Params must be an object")
        with self._lock:
            self._params.update(params)
        return self

    def enqueue(self, task_id: str) -> Job:
        """Request a task id to be run by this job."""

        if not isinstance(task_id, str) or not task_id:
            raise InvalidArgumentError("Enqueue params isn't a valid string")
        with self._lock:
            if self._started:
                raise JobStateError(
                    f"Job {self._uid} is already running; cannot enqueue {task_id!r}",
                )
            self._enqueued_task_ids.append(task_id)
        return self

    def run(self) -> None:
        """Start the job.  Calling it again has no effect."""

        with self._lock:
            if self._started:
                return
            self._started = True
            self._events.append(JobEvent(JobEventKind.START))
        self._drain()

    def complete(self, unit: ExecutionUnit) -> None:
        """Report one unit of the current block as finished.

        Chained units must be reported in chain order.  Once every unit of the
        block is done, the next block is produced, or the job is marked done
        when the plan is exhausted.  Safe to call from worker threads, including
        while the block listener is still running.
        """

        with self._lock:
            block = self.current_block
            if self._state is not JobState.RUNNING or block is None:
                raise JobStateError(
                    f"Job {self._uid} cannot complete units while {self._state.value}",
                )
            if unit.block is not block:
                raise JobStateError(
                    f"Unit {unit.index} does not belong to the current block of job {self._uid}",
                )
            block.mark_completed(unit.index)
            if not block.is_complete:
                return
            self._events.append(JobEvent(JobEventKind.BLOCK_COMPLETED, block.group_index))
        self._drain()

    def apply_next_block(self) -> ExecutionBlock:
        """Advance the plan cursor and append the next execution block.

        The current block must be complete.  A listener may call this once it
        has run its block; the queued completion of that block is then stale
        and skipped.
        """

        with self._lock:
            block = self._apply_next_block()
        self._drain()
        return block

    def _apply_next_block(self) -> ExecutionBlock:
        if self._plan is None:
            raise JobStateError(f"Job {self._uid} has no plan yet; call run() first")
        if self._state is JobState.FAILED:
            raise JobStateError(f"Job {self._uid} failed; no further blocks are built")
        if self._plan_cursor + 1 >= len(self._plan):
            raise PlanExhaustedError(
                f"Job {self._uid} has no plan group after index {self._plan_cursor}",
            )
        current = self.current_block
        if current is not None and not current.is_complete:
            raise JobStateError(
                f"Job {self._uid} block {current.group_index} still has "
                f"{len(current.tasks) - len(current.completed)} unit(s) running",
            )
        group_index = self._plan_cursor + 1
        try:
            block = build_execution_block(
                self._agent,
                self._plan[group_index],
                self._params,
                group_index=group_index,
            )
        except Exception as exc:
            self._state = JobState.FAILED
            self._events.clear()
            logger.error("Job %s failed building block %d: %s", self._uid, group_index, exc)
            raise
        self._plan_cursor = group_index
        self._execution_queue.append(block)
        logger.info(
            "Job %s applied block %d/%d with %d unit(s)",
            self._uid,
            group_index + 1,
            len(self._plan),
            len(block.tasks),
        )
        self._events.append(JobEvent(JobEventKind.BLOCK_APPLIED, group_index))
        return block

    def _drain(self) -> None:
        """Handle queued events until none are left.

        Transitions run under the lock; the block listener is called after the
        lock is released so it may wait on workers that call ``complete()``.
        Only one thread drains at a time; others just leave their events queued.
        """

        with self._lock:
            if self._dispatching:
                return
            self._dispatching = True
        try:
            while True:
                with self._lock:
                    if not self._events:
                        self._dispatching = False
                        return
                    event = self._events.popleft()
                    handler_name = _TRANSITIONS.get((self._state, event.kind))
                    if handler_name is None:
                        raise JobStateError(
                            f"Job {self._uid} cannot handle {event.kind.value} "
                            f"while {self._state.value}",
                        )
                    applied = getattr(self, handler_name)(event)
                if applied is not None and self._on_block_applied_listener is not None:
                    self._on_block_applied_listener(self, applied)
        except Exception:
            with self._lock:
                self._events.clear()
                self._dispatching = False
                if self._state is not JobState.FAILED:
                    self._state = JobState.FAILED
                    logger.exception("Job %s failed", self._uid)
            raise

    def _on_start(self, _event: JobEvent) -> None:
        self._state = JobState.PREPARING
        self._prepare_run()
        self._state = JobState.RUNNING
        if not self._plan:
            logger.warning("Job %s has no enqueued task in the agent plan", self._uid)
            self._state = JobState.DONE
            return
        self._apply_next_block()

    def _prepare_run(self) -> None:
        self._agent.apply_setup()
        self._plan = filter_plan(self._agent.plan, self._enqueued_task_ids)
        logger.info(
            "Job %s prepared: %d enqueued task(s), %d plan group(s)",
            self._uid,
            len(self._enqueued_task_ids),
            len(self._plan),
        )

    def _block_for(self, event: JobEvent) -> ExecutionBlock:
        if event.block_index is None or not 0 <= event.block_index < len(self._execution_queue):
            raise JobStateError(f"Job {self._uid} has no block for {event.kind.value}")
        return self._execution_queue[event.block_index]

    def _on_block_applied(self, event: JobEvent) -> ExecutionBlock:
        block = self._block_for(event)
        if block.is_complete:
            self._events.append(JobEvent(JobEventKind.BLOCK_COMPLETED, block.group_index))
        return block

    def _on_block_completed(self, event: JobEvent) -> None:
        block = self._block_for(event)
        if block.group_index < self._plan_cursor:
            logger.debug(
                "Job %s skips completion of block %d, already at block %d",
                self._uid,
                block.group_index,
                self._plan_cursor,
            )
            return
        if self._plan is not None and self._plan_cursor + 1 < len(self._plan):
            self._apply_next_block()
            return
        self._state = JobState.DONE
        logger.info("Job %s finished after %d block(s)", self._uid, len(self._execution_queue))
