# tests/test_sorting.py

from __future__ import annotations

import random

import pytest

from taskcycle.core.errors import InvalidInputError
from taskcycle.tasks.sorting import sort_tasks

from .fakes import make_task


def _titles(tasks) -> list[str]:
    return [t.title for t in tasks]


def test_priority_descending() -> None:
    tasks = [make_task(p or "unset", priority=p) for p in ("HIGH", "VERY HIGH", "NORMAL", "", "LOW")]

    ordered = sort_tasks(tasks, "priority")

    assert [t.priority for t in ordered] == ["VERY HIGH", "HIGH", "NORMAL", "LOW", ""]
    # Input is left untouched.
    assert [t.priority for t in tasks] == ["HIGH", "VERY HIGH", "NORMAL", "", "LOW"]


def test_priority_ascending_reverses() -> None:
    tasks = [make_task(p or "unset", priority=p) for p in ("HIGH", "VERY HIGH", "NORMAL", "", "LOW")]

    ordered = sort_tasks(tasks, "priority", "ascending")

    assert [t.priority for t in ordered] == ["", "LOW", "NORMAL", "HIGH", "VERY HIGH"]


def test_difficulty_is_stable_for_ties() -> None:
    tasks = [
        make_task("a", difficulty="EASY"),
        make_task("b", difficulty="VERY HARD"),
        make_task("c", difficulty="EASY"),
    ]
    assert _titles(sort_tasks(tasks, "difficulty")) == ["b", "a", "c"]


def test_estimated_time_shorter_first_missing_last() -> None:
    tasks = [
        make_task("none"),
        make_task("long", estimated_time=90),
        make_task("short", estimated_time=15),
    ]
    assert _titles(sort_tasks(tasks, "estimatedTime")) == ["short", "long", "none"]


def test_urgent_first_regardless_of_direction() -> None:
    tasks = [make_task("calm"), make_task("fire", is_urgent=True), make_task("calm2")]

    assert _titles(sort_tasks(tasks, "urgent")) == ["fire", "calm", "calm2"]
    assert _titles(sort_tasks(tasks, "urgent", "ascending")) == ["fire", "calm", "calm2"]


def test_random_is_a_permutation() -> None:
    tasks = [make_task(str(i)) for i in range(10)]

    shuffled = sort_tasks(tasks, "random", rng=random.Random(7))

    assert sorted(_titles(shuffled)) == sorted(_titles(tasks))
    assert shuffled is not tasks


@pytest.mark.parametrize(("attribute", "direction"), [("colour", "descending"), ("priority", "sideways")])
def test_invalid_arguments_are_rejected(attribute: str, direction: str) -> None:
    with pytest.raises(InvalidInputError):
        sort_tasks([make_task()], attribute, direction)
