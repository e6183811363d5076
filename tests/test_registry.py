from __future__ import annotations

import logging
from typing import Any, Callable

import pytest

from class_composition import (
    REGISTRY,
    BuildConfig,
    ClassRegistry,
    MinionAssertionError,
    NoSuchMethod,
    RegistrationError,
    SpecError,
    create,
    get_class,
    minionize,
)

SpecFactory = Callable[..., dict[str, Any]]


def test_named_class_is_registered(registry: ClassRegistry, make_counter_spec: SpecFactory) -> None:
    Counter = minionize(make_counter_spec(name="RegCounter"), registry=registry)

    assert "RegCounter" in registry
    assert registry["RegCounter"] is Counter
    assert registry.get("RegCounter") is Counter
    assert registry.names() == ["RegCounter"]
    assert len(registry) == 1
    assert "RegCounter" not in REGISTRY


def test_create_by_name(registry: ClassRegistry, make_counter_spec: SpecFactory) -> None:
    spec = make_counter_spec(name="RegCounter", requires={"start": {}})
    spec["implementation"]["has"]["count"]["init_arg"] = "start"
    minionize(spec, registry=registry)

    assert registry.create("RegCounter", start=3).next() == 3
    with pytest.raises(MinionAssertionError, match="Parameter 'start' is not provided"):
        registry.create("RegCounter")


def test_create_unknown_name(registry: ClassRegistry) -> None:
    with pytest.raises(NoSuchMethod) as excinfo:
        registry.create("Nope")
    assert str(excinfo.value) == 'Can\'t locate object method "new" via package "Nope"'


def test_duplicate_name_is_rejected_and_first_class_kept(
    registry: ClassRegistry, make_counter_spec: SpecFactory
) -> None:
    first = minionize(make_counter_spec(name="RegCounter"), registry=registry)
    with pytest.raises(RegistrationError, match='Class "RegCounter" is already registered'):
        minionize(make_counter_spec(name="RegCounter", default=10), registry=registry)
    assert registry["RegCounter"] is first


def test_replace_policy_swaps_the_class(
    registry: ClassRegistry, make_counter_spec: SpecFactory, caplog: pytest.LogCaptureFixture
) -> None:
    minionize(make_counter_spec(name="RegCounter"), registry=registry)
    with caplog.at_level(logging.WARNING, logger="class_composition.registry"):
        second = minionize(
            make_counter_spec(name="RegCounter", default=10),
            registry=registry,
            config=BuildConfig(on_reregister="replace"),
        )

    assert registry["RegCounter"] is second
    assert registry.create("RegCounter").next() == 10
    assert "Replacing registered class RegCounter" in caplog.text


def test_anonymous_class_is_not_registered(registry: ClassRegistry, make_counter_spec: SpecFactory) -> None:
    Counter = minionize(make_counter_spec(), registry=registry)
    assert len(registry) == 0
    assert Counter.__name__ not in registry


def test_failed_build_registers_nothing(registry: ClassRegistry, make_counter_spec: SpecFactory) -> None:
    with pytest.raises(SpecError, match="not implemented"):
        minionize(make_counter_spec(name="Broken", interface=["next", "missing"]), registry=registry)
    assert "Broken" not in registry


def test_unregister_and_clear(registry: ClassRegistry, make_counter_spec: SpecFactory) -> None:
    Counter = minionize(make_counter_spec(name="RegCounter"), registry=registry)
    minionize(make_counter_spec(name="Other"), registry=registry)

    assert list(registry) == ["RegCounter", "Other"]
    assert registry.unregister("RegCounter") is Counter
    assert registry.unregister("RegCounter") is None
    registry.clear()
    assert len(registry) == 0


def test_module_level_helpers_use_the_global_registry(make_counter_spec: SpecFactory) -> None:
    Counter = minionize(make_counter_spec(name="GlobalRegCounter"))

    assert get_class("GlobalRegCounter") is Counter
    assert create("GlobalRegCounter").next() == 0
    assert get_class("NotThere") is None
