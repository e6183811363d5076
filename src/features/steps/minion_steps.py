# features/steps/minion_steps.py
from __future__ import annotations

from typing import Any

from behave import given, then, when

from classminion.step_state import get_minion_step_state

# ----------------------------
# Specifications used by the scenarios
# ----------------------------


def _next(self: Any) -> int:
    value = self["count"]
    self["count"] = value + 1
    return value


def _has(self: Any, item: Any) -> bool:
    return item in self["members"]


def _add(self: Any, item: Any) -> None:
    self["members"][item] = True


def counter_spec(name: str | None = None) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "interface": ["next"],
        "implementation": {
            "name": "BddCounterImpl",
            "methods": {"next": _next},
            "has": {"count": {"default": 0}},
        },
    }
    if name:
        spec["name"] = name
    return spec


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parameter_counter_spec() -> dict[str, Any]:
    spec = counter_spec()
    spec["construct_with"] = {"start": {"assert": {"is_integer": _is_integer}}}
    spec["implementation"]["has"] = {"count": {"init_arg": "start"}}
    return spec


def set_spec() -> dict[str, Any]:
    return {
        "interface": ["has", "add"],
        "implementation": {
            "name": "BddSetImpl",
            "methods": {"has": _has, "add": _add},
            "has": {
                "members": {
                    "default": dict,
                    "init_arg": "items",
                    "map_init_arg": lambda items: {item: True for item in items},
                }
            },
        },
        "build_args": lambda cls, *items: {"items": list(items)},
    }


# ----------------------------
# Steps
# ----------------------------


@given("a counter specification")
def step_counter_spec(context):
    get_minion_step_state(context).spec = counter_spec()


@given('a counter specification named "{name}"')
def step_named_counter_spec(context, name):
    get_minion_step_state(context).spec = counter_spec(name)


@given("a counter specification that starts from a parameter")
def step_parameter_counter_spec(context):
    get_minion_step_state(context).spec = parameter_counter_spec()


@given("a set specification with positional construction")
def step_set_spec(context):
    get_minion_step_state(context).spec = set_spec()


@when("I compile the specification")
def step_compile(context):
    get_minion_step_state(context).compile()


@when("I construct an instance")
def step_construct(context):
    state = get_minion_step_state(context)
    state.instance = state.minion_class.new()


@when('I construct the registered class "{name}"')
def step_construct_registered(context, name):
    state = get_minion_step_state(context)
    state.instance = state.registry.create(name)


@when("I construct an instance with start {start:d}")
def step_construct_with_start(context, start):
    state = get_minion_step_state(context)
    state.instance = state.minion_class.new(start=start)


@when('I construct an instance with start "{start}"')
def step_construct_with_bad_start(context, start):
    state = get_minion_step_state(context)
    state.instance = state.attempt(state.minion_class.new, start=start)


@when('I call "{selector}" {count:d} times')
def step_call_repeatedly(context, selector, count):
    state = get_minion_step_state(context)
    state.results = [state.instance.call(selector) for _ in range(count)]


@when("I construct a set of {low:d} to {high:d}")
def step_construct_set(context, low, high):
    state = get_minion_step_state(context)
    state.instance = state.minion_class.new(*range(low, high + 1))


@when("I add {item:d} to the set")
def step_add(context, item):
    get_minion_step_state(context).instance.add(item)


@then('the results are "{expected}"')
def step_check_results(context, expected):
    state = get_minion_step_state(context)
    assert state.results == [int(part) for part in expected.split(",")], state.results


@then("calling \"{selector}\" on the instance fails with '{message}'")
def step_instance_call_fails(context, selector, message):
    state = get_minion_step_state(context)
    state.attempt(getattr, state.instance, selector)
    assert message in str(state.expect_error()), str(state.error)


@then("calling \"{selector}\" on the class fails with '{message}'")
def step_class_call_fails(context, selector, message):
    state = get_minion_step_state(context)
    state.attempt(getattr, state.minion_class, selector)
    assert message in str(state.expect_error()), str(state.error)


@then('construction fails with "{message}"')
def step_construction_fails(context, message):
    state = get_minion_step_state(context)
    assert str(state.expect_error()) == message, str(state.error)


@then("the set has {low:d} to {high:d}")
def step_set_has_range(context, low, high):
    instance = get_minion_step_state(context).instance
    assert all(instance.has(item) for item in range(low, high + 1))


@then("the set has {item:d}")
def step_set_has(context, item):
    assert get_minion_step_state(context).instance.has(item)


@then("the set does not have {item:d}")
def step_set_lacks(context, item):
    assert not get_minion_step_state(context).instance.has(item)
