from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from class_composition.assertions import Subject, check, missing
from class_composition.attributes import AttributeSchema
from class_composition.contracts import SpecError
from class_composition.dispatch import Minion, allocate

logger = logging.getLogger(__name__)

BuildArgs = Callable[..., Mapping[str, Any]]


@dataclass(frozen=True)
class Utility:
    """
    Low-level construction surface for hand-written constructors.

    `new_object` allocates a sealed instance with fresh defaults and no
    validation, `build` runs the BUILD hook, `assert_` checks one declared
    parameter (`assert` is a Python keyword).
    """

    minion_class: type
    schema: AttributeSchema
    build_hook: Optional[Callable[..., Any]] = None

    def new_object(self, raw_attrs: Optional[Mapping[str, Any]] = None) -> Minion:
        obj = allocate(self.minion_class, self.schema.defaults())
        for key, value in (raw_attrs or {}).items():
            obj[key] = value
        return obj

    def build(self, obj: Minion, args: Optional[Mapping[str, Any]] = None) -> None:
        if self.build_hook is not None:
            self.build_hook(obj, dict(args or {}))

    def assert_(self, param_name: str, value: Any) -> None:
        param = self.schema.required_params.get(param_name)
        if param is None:
            raise SpecError(f'Class "{self.minion_class.__name__}" declares no parameter "{param_name}"')
        check(Subject.PARAMETER, param_name, value, param.assert_)


def utility_class(cls: type) -> Utility:
    compiled = cls.__dict__.get("__compiled__")
    if compiled is None:
        raise SpecError(f"{cls!r} is not a compiled minion class")
    return compiled.utility


def adapt_arguments(
    cls: type,
    build_args: Optional[BuildArgs],
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any],
) -> dict[str, Any]:
    if build_args is not None:
        params = build_args(cls, *args, **kwargs)
        if not isinstance(params, Mapping):
            raise TypeError(
                f"build_args of {cls.__name__} must return a mapping, got {type(params).__name__}"
            )
        return dict(params)
    if not args:
        return dict(kwargs)
    if len(args) == 1 and isinstance(args[0], Mapping):
        return {**args[0], **kwargs}
    raise TypeError(
        f"{cls.__name__} takes named parameters only; declare build_args to accept positional arguments"
    )


def validate_params(schema: AttributeSchema, params: Mapping[str, Any]) -> dict[str, Any]:
    validated = dict(params)
    for name, param in schema.required_params.items():
        if name in params:
            value = params[name]
        elif param.has_default:
            value = param.default() if callable(param.default) else param.default
            validated[name] = value
        elif param.optional:
            continue
        else:
            raise missing(Subject.PARAMETER, name)
        check(Subject.PARAMETER, name, value, param.assert_)
    return validated


def make_default_constructor(utility: Utility, build_args: Optional[BuildArgs]) -> Callable[..., Minion]:
    def new(cls: type, *args: Any, **kwargs: Any) -> Minion:
        params = adapt_arguments(cls, build_args, args, kwargs)
        validated = validate_params(utility.schema, params)
        obj = utility.new_object(utility.schema.bind_init_args(validated))
        utility.build(obj, params)
        return obj

    return new
