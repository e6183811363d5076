from __future__ import annotations

import keyword
from typing import Any, Mapping

from class_composition.config import SEMIPRIVATE
from class_composition.contracts import Specification, SpecError

RESERVED_SELECTORS = frozenset({"ASSERT"})


def _is_selector(name: object) -> bool:
    if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
        return False
    return not (name.startswith("__") and name.endswith("__"))


def validate_specification(raw: Specification | Mapping[str, Any]) -> Specification:
    """
    Check a specification without mutating it and return its parsed form.
    Malformed predicate maps surface from the pydantic contracts as SpecError.
    """
    spec = Specification.parse(raw)
    label = spec.name or "<anonymous>"

    if not spec.interface:
        raise SpecError(f'Class "{label}" must declare a non-empty interface')

    seen: set[str] = set()
    for selector in spec.interface:
        if not _is_selector(selector):
            raise SpecError(f'Class "{label}" has an invalid interface selector {selector!r}')
        if selector in RESERVED_SELECTORS:
            raise SpecError(f'Selector "{selector}" is reserved and cannot be public')
        if selector in seen:
            raise SpecError(f'Selector "{selector}" is listed twice in the interface of "{label}"')
        seen.add(selector)

    if spec.implementation is None and not spec.roles:
        raise SpecError(f'Class "{label}" needs an implementation or at least one role')

    for param_name, param in spec.requires.items():
        if not isinstance(param_name, str) or not param_name.isidentifier():
            raise SpecError(f"Invalid constructor parameter name {param_name!r}")
        attr = param.attribute_name(param_name)
        if attr == SEMIPRIVATE:
            raise SpecError(f'Attribute name "{SEMIPRIVATE}" is reserved')
        if param.optional and param.has_default:
            raise SpecError(f'Parameter "{param_name}" cannot be both optional and defaulted')

    for selector in spec.class_methods:
        if not _is_selector(selector):
            raise SpecError(f"Invalid class method name {selector!r}")

    return spec
