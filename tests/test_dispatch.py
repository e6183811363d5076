from __future__ import annotations

from typing import Any, Callable

import pytest

from class_composition import (
    SEMIPRIVATE,
    CompositionError,
    MinionAssertionError,
    NoSuchMethod,
    SealedRecordViolation,
    SourceDescriptor,
    SpecError,
    call,
    minionize,
    semiprivate_call,
)

SpecFactory = Callable[..., dict[str, Any]]


def _double(self: Any) -> int:
    return self[SEMIPRIVATE].twice(self["count"])


def _twice(self: Any, value: int) -> int:
    return value * 2


def test_public_surface_is_exactly_the_interface(make_counter_spec: SpecFactory) -> None:
    Counter = minionize(make_counter_spec(name="DispatchCounter", extra_methods={"reset": lambda self: None}))
    counter = Counter.new()

    assert counter.next() == 0
    assert call(counter, "next") == 1
    assert counter.call("next") == 2
    assert dir(counter) == ["next"]

    with pytest.raises(NoSuchMethod) as excinfo:
        counter.reset()
    assert excinfo.value.selector == "reset"
    assert excinfo.value.class_name == "DispatchCounter"
    assert not hasattr(counter, "new")
    with pytest.raises(NoSuchMethod, match='no such public method "reset" on class "DispatchCounter"'):
        call(counter, "reset")


def test_semiprivate_methods_only_through_the_handle(make_counter_spec: SpecFactory) -> None:
    Doubler = minionize(
        make_counter_spec(
            interface=["double"],
            implementation={
                "methods": {"double": _double, "twice": _twice},
                "semiprivate": ["twice"],
                "has": {"count": {"default": 21}},
            },
        )
    )
    obj = Doubler.new()

    assert obj.double() == 42
    assert obj[SEMIPRIVATE].twice(5) == 10
    assert obj[SEMIPRIVATE].call("twice", 1) == 2
    assert semiprivate_call(obj, "twice", 3) == 6
    with pytest.raises(NoSuchMethod):
        obj.twice(5)
    with pytest.raises(NoSuchMethod, match='no such semiprivate method "double"'):
        obj[SEMIPRIVATE].double()


def test_interface_selector_cannot_be_semiprivate(make_counter_spec: SpecFactory) -> None:
    with pytest.raises(SpecError, match="both public and semiprivate"):
        minionize(make_counter_spec(implementation={"methods": {"next": _twice}, "semiprivate": ["next"]}))


def test_unimplemented_interface_selector(make_counter_spec: SpecFactory) -> None:
    with pytest.raises(SpecError, match='Interface method "prev" is not implemented'):
        minionize(make_counter_spec(interface=["next", "prev"]))


def test_unimplemented_semiprivate_selector(make_counter_spec: SpecFactory) -> None:
    spec = make_counter_spec()
    spec["implementation"]["semiprivate"] = ["helper"]
    with pytest.raises(SpecError, match='Semiprivate method "helper" is not implemented'):
        minionize(spec)


def test_sealed_record_rejects_undeclared_keys(make_counter_spec: SpecFactory) -> None:
    counter = minionize(make_counter_spec()).new()

    counter["count"] = 5
    assert counter["count"] == 5
    with pytest.raises(SealedRecordViolation, match="Attempt to access disallowed key 'colour'"):
        counter["colour"]
    with pytest.raises(SealedRecordViolation):
        counter["colour"] = "red"
    with pytest.raises(SealedRecordViolation):
        del counter["count"]
    with pytest.raises(SealedRecordViolation):
        counter.colour = "red"
    with pytest.raises(SealedRecordViolation):
        counter[SEMIPRIVATE] = None
    assert counter["count"] == 5


def test_instance_state_cannot_be_widened_from_outside(make_counter_spec: SpecFactory) -> None:
    counter = minionize(make_counter_spec()).new()

    with pytest.raises(SealedRecordViolation, match="__minion_state__"):
        counter.__minion_state__
    with pytest.raises(SealedRecordViolation):
        getattr(counter, "__minion_state__")

    # even a state dict reached through the slot descriptor does not widen the key set
    type(counter).__minion_state__.__get__(counter)["intruder"] = 1
    with pytest.raises(SealedRecordViolation, match="'intruder'"):
        counter["intruder"]
    with pytest.raises(SealedRecordViolation):
        counter["intruder"] = 2
    assert counter["count"] == 0


def test_compiled_class_cannot_be_reopened_or_extended(make_counter_spec: SpecFactory) -> None:
    Counter = minionize(make_counter_spec())
    with pytest.raises(SealedRecordViolation):
        Counter.prev = lambda self: None
    with pytest.raises(CompositionError, match="cannot be inherited"):
        type(Counter)("SubCounter", (Counter,), {})


def test_list_forwarding_goes_public_or_semiprivate() -> None:
    Stack = minionize(
        {
            "interface": ["append", "peek"],
            "implementation": {
                "methods": {"peek": lambda self: self["items"][-1]},
                "has": {"items": {"default": list, "handles": ["append", "pop"]}},
            },
        }
    )
    stack = Stack.new()
    stack.append(1)
    stack.append(2)

    assert stack.peek() == 2
    assert stack[SEMIPRIVATE].pop() == 2
    with pytest.raises(NoSuchMethod):
        stack.pop()


def test_mapping_forwarding_renames_selector() -> None:
    Wrapper = minionize(
        {
            "interface": ["size"],
            "implementation": {"has": {"items": {"default": list, "handles": {"size": "__len__"}}}},
        }
    )
    wrapper = Wrapper.new()
    wrapper["items"].extend([1, 2, 3])
    assert wrapper.size() == 3


def test_role_forwarding_expands_role_selectors() -> None:
    Counting = SourceDescriptor(name="Counting", role=True, interface=["next"])
    Counter = minionize(
        {
            "interface": ["next"],
            "implementation": {
                "methods": {"next": lambda self: self["count"]},
                "has": {"count": {"default": 0}},
            },
        }
    )
    Proxy = minionize(
        {
            "interface": ["next"],
            "implementation": {"has": {"target": {"default": Counter.new, "handles": Counting}}},
        }
    )
    assert Proxy.new().next() == 0


def test_forwarded_selector_conflicts_with_declared_method() -> None:
    with pytest.raises(CompositionError, match='method "append"'):
        minionize(
            {
                "interface": ["append"],
                "implementation": {
                    "methods": {"append": lambda self, x: None},
                    "has": {"items": {"default": list, "handles": ["append"]}},
                },
            }
        )


def test_readers_and_writers_are_public() -> None:
    Point = minionize(
        {
            "interface": ["norm"],
            "implementation": {
                "methods": {"norm": lambda self: abs(self["x"])},
                "has": {
                    "x": {
                        "default": 0,
                        "reader": True,
                        "writer": True,
                        "assert": {"is_integer": lambda v: isinstance(v, int)},
                    },
                    "label": {"default": "p", "reader": "get_label"},
                },
            },
        }
    )
    point = Point.new()

    assert point.set_x(-3) is point
    assert point.x() == -3
    assert point.norm() == 3
    assert point.get_label() == "p"
    with pytest.raises(MinionAssertionError, match="Attribute 'x' is not integer"):
        point.set_x("three")
    assert point.x() == -3


def test_reader_conflicting_with_method_is_rejected() -> None:
    with pytest.raises(CompositionError, match='method "x"'):
        minionize(
            {
                "interface": ["x"],
                "implementation": {"methods": {"x": lambda self: 1}, "has": {"x": {"reader": True}}},
            }
        )


def test_assert_helper_checks_attribute_predicates() -> None:
    def bump(self: Any, by: Any) -> None:
        self[SEMIPRIVATE].ASSERT("count", self["count"] + by)
        self["count"] += by

    Counter = minionize(
        {
            "interface": ["bump"],
            "implementation": {
                "methods": {"bump": bump},
                "has": {"count": {"default": 0, "assert": {"non_negative": lambda v: v >= 0}}},
            },
        }
    )
    counter = Counter.new()
    counter.bump(2)
    with pytest.raises(MinionAssertionError, match="Attribute 'count' is not non negative"):
        counter.bump(-5)
    assert counter["count"] == 2
    with pytest.raises(SealedRecordViolation):
        counter[SEMIPRIVATE].ASSERT("missing", 1)
