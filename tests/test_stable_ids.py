# tests/test_stable_ids.py
from __future__ import annotations

from typing import Any, Callable

from class_composition import minionize
from class_composition.contracts import Specification
from class_composition.roles import compose
from class_composition.stable_ids import ANONYMOUS_PREFIX, derive_anonymous_name

SpecFactory = Callable[..., dict[str, Any]]


def _name(raw: dict[str, Any]) -> str:
    spec = Specification.parse(raw)
    return derive_anonymous_name(spec, compose(spec))


def test_anonymous_names_are_deterministic_across_builds(make_counter_spec: SpecFactory) -> None:
    first = minionize(make_counter_spec())
    second = minionize(make_counter_spec())

    assert first.__name__ == second.__name__
    assert first is not second
    assert first.__name__.startswith(ANONYMOUS_PREFIX)
    assert len(first.__name__) == len(ANONYMOUS_PREFIX) + 12


def test_anonymous_name_changes_with_the_class_shape(make_counter_spec: SpecFactory) -> None:
    base = _name(make_counter_spec())

    assert _name(make_counter_spec(requires={"start": {}})) != base
    assert _name(make_counter_spec(extra_methods={"reset": lambda self: None}, interface=["next", "reset"])) != base


def test_anonymous_name_ignores_defaults(make_counter_spec: SpecFactory) -> None:
    assert _name(make_counter_spec(default=0)) == _name(make_counter_spec(default=99))
