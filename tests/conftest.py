from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from class_composition import REGISTRY, ClassRegistry


def counter_next(self: Any) -> int:
    value = self["count"]
    self["count"] = value + 1
    return value


def is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@pytest.fixture(autouse=True)
def _restore_global_registry() -> Iterator[None]:
    before = set(REGISTRY.names())
    yield
    for name in set(REGISTRY.names()) - before:
        REGISTRY.unregister(name)


@pytest.fixture
def registry() -> ClassRegistry:
    return ClassRegistry()


@pytest.fixture
def make_counter_spec() -> Callable[..., dict[str, Any]]:
    def _make_counter_spec(
        *,
        name: str | None = None,
        default: Any = 0,
        extra_methods: dict[str, Callable[..., Any]] | None = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "interface": ["next"],
            "implementation": {
                "name": "CounterImpl",
                "methods": {"next": counter_next, **(extra_methods or {})},
                "has": {"count": {"default": default}},
            },
        }
        if name is not None:
            spec["name"] = name
        spec.update(overrides)
        return spec

    return _make_counter_spec
