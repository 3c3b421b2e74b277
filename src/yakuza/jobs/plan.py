"""Effective plan computation."""

from __future__ import annotations

from collections.abc import Sequence

from yakuza.jobs.models import Plan, PlanGroup, TaskSpec


def filter_plan(
    master_plan: Sequence[Sequence[TaskSpec]],
    enqueued_task_ids: Sequence[str],
) -> Plan:
    """Reduce a master plan to the enqueued task ids.

    Groups keep their master-plan order.  Inside a group, specs follow the
    order in which their ids were enqueued, so an id enqueued twice yields the
    spec twice.  Groups with no enqueued ids are dropped, and ids missing from
    the master plan contribute nothing.
    """

    effective: list[PlanGroup] = []
    for group in master_plan:
        specs_by_id: dict[str, TaskSpec] = {}
        for spec in group:
            specs_by_id.setdefault(spec.task_id, spec)

        filtered = tuple(
            specs_by_id[task_id] for task_id in enqueued_task_ids if task_id in specs_by_id
        )
        if filtered:
            effective.append(filtered)
    return tuple(effective)
