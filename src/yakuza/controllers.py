"""Controllers for CLI commands."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from yakuza.agent import Agent, StaticTask, TaskBuilder
from yakuza.contracts import PlanDocument, read_plan_document
from yakuza.jobs.job import Job
from yakuza.jobs.models import ExecutionBlock, JobState, TaskSpec


@dataclass(slots=True)
class PlanCommand:
    """CLI inputs for the plan dry-run command."""

    plan_path: Path
    task_ids: tuple[str, ...]
    params: tuple[str, ...]
    job_uid: str


class PlanCliController:
    """Runs a job against a plan document with instant task completion."""

    def dry_run(self, command: PlanCommand) -> list[str]:
        document = read_plan_document(command.plan_path)
        agent = _agent_from_document(document)
        lines: list[str] = []

        def _on_block_applied(job: Job, block: ExecutionBlock) -> None:
            lines.extend(_describe_block(block))
            while ready := block.ready_units():
                for unit in ready:
                    job.complete(unit)

        job = Job(command.job_uid, None, agent, on_block_applied=_on_block_applied)
        job.params(_parse_params(command.params))
        for task_id in command.task_ids:
            job.enqueue(task_id)
        job.run()

        plan = job.plan or ()
        header = [f"Job {job.uid}: agent={agent.id} groups={len(plan)}"]
        header.extend(
            f"Group {index + 1}: " + ", ".join(_describe_spec(spec) for spec in group)
            for index, group in enumerate(plan)
        )
        status = "done" if job.state is JobState.DONE else job.state.value
        footer = f"Job {job.uid} {status} after {len(job.execution_queue)} block(s)"
        return [*header, *lines, footer]


def _agent_from_document(document: PlanDocument) -> Agent:
    agent = Agent(document.agent_id, plan=document.plan)
    task_ids = {spec.task_id for group in document.plan for spec in group}
    for task_id in sorted(task_ids):
        agent.define(task_id, _static_builder(task_id, document.instances.get(task_id, 1)))
    return agent


def _static_builder(task_id: str, count: int) -> TaskBuilder:
    def _build(params: Mapping[str, Any]) -> list[StaticTask]:
        return [StaticTask(task_id=task_id, params=dict(params), index=i) for i in range(count)]

    return _build


def _parse_params(raw_params: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for token in raw_params:
        if "=" not in token:
            raise ValueError(f"Invalid param {token!r}. Expected format 'key=value'.")
        key, value = token.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Invalid param {token!r}: empty key.")
        params[key] = value
    return params


def _describe_spec(spec: TaskSpec) -> str:
    flags = [name for name, on in (("sync", spec.sync), ("self-sync", spec.self_sync)) if on]
    return f"{spec.task_id} [{', '.join(flags)}]" if flags else spec.task_id


def _describe_block(block: ExecutionBlock) -> list[str]:
    lines = [f"Block {block.group_index + 1}: heads={len(block.heads)} units={len(block.tasks)}"]
    for head in block.heads:
        chain = [_describe_task(block.tasks[index]) for index in block.chain(head)]
        lines.append("  " + " -> ".join(chain))
    return lines


def _describe_task(task: object) -> str:
    if isinstance(task, StaticTask):
        return f"{task.task_id}#{task.index}"
    return repr(task)
