from __future__ import annotations

import allure
import pytest

from yakuza.jobs.errors import InvalidArgumentError
from yakuza.jobs.models import TaskSpec, parse_plan
from yakuza.jobs.plan import filter_plan

pytestmark = [
    allure.epic("Job Runtime"),
    allure.feature("Plan Filtering"),
]


def _ids(plan) -> list[list[str]]:
    return [[spec.task_id for spec in group] for group in plan]


@pytest.mark.parametrize("master", [[["a", "b"]], [["b", "a"]]])
def test_filter_follows_enqueue_order_and_duplicates(master) -> None:
    plan = filter_plan(parse_plan(master), ["a", "b", "a"])

    assert _ids(plan) == [["a", "b", "a"]]


def test_duplicate_enqueue_reuses_the_same_spec() -> None:
    master = parse_plan([[{"taskId": "a", "selfSync": True}]])

    (group,) = filter_plan(master, ["a", "a"])

    assert group[0] is group[1]
    assert group[0].self_sync


def test_groups_without_enqueued_ids_are_dropped() -> None:
    master = parse_plan([["login"], ["search", "detail"], ["report"]])

    plan = filter_plan(master, ["report", "login"])

    assert _ids(plan) == [["login"], ["report"]]


def test_group_order_is_never_changed() -> None:
    master = parse_plan([["a"], ["b"], ["c"]])

    plan = filter_plan(master, ["c", "b", "a"])

    assert _ids(plan) == [["a"], ["b"], ["c"]]


def test_unknown_ids_are_ignored() -> None:
    master = parse_plan([["a"]])

    assert _ids(filter_plan(master, ["missing", "a"])) == [["a"]]
    assert filter_plan(master, ["missing"]) == ()


def test_empty_enqueue_yields_empty_plan() -> None:
    assert filter_plan(parse_plan([["a"], ["b"]]), []) == ()


def test_id_present_in_several_groups_is_matched_in_each() -> None:
    master = parse_plan([["a", "b"], ["a"]])

    assert _ids(filter_plan(master, ["a"])) == [["a"], ["a"]]


def test_task_spec_from_raw_accepts_both_key_styles() -> None:
    assert TaskSpec.from_raw({"taskId": "a", "selfSync": True}) == TaskSpec("a", self_sync=True)
    assert TaskSpec.from_raw({"task_id": "a", "sync": True}) == TaskSpec("a", sync=True)
    assert TaskSpec.from_raw("a") == TaskSpec("a")


@pytest.mark.parametrize("raw", [{"taskId": ""}, {"selfSync": True}, 3, None])
def test_task_spec_from_raw_rejects_invalid_nodes(raw) -> None:
    with pytest.raises(InvalidArgumentError):
        TaskSpec.from_raw(raw)


@pytest.mark.parametrize("raw", ["a", {"a": 1}, [["a"], "b"]])
def test_parse_plan_rejects_malformed_groups(raw) -> None:
    with pytest.raises(InvalidArgumentError):
        parse_plan(raw)
