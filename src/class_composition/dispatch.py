# class_composition/dispatch.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from types import MethodType
from typing import Any, Callable, Mapping

from class_composition.assertions import Subject, check
from class_composition.attributes import AttributeSchema
from class_composition.config import SEMIPRIVATE
from class_composition.contracts import (
    AttributeDescriptor,
    CompositionError,
    NoSuchMethod,
    ParamDescriptor,
    SealedRecordViolation,
    Specification,
    SpecError,
)
from class_composition.roles import Composition, expand_handles

logger = logging.getLogger(__name__)

Body = Callable[..., Any]

_STATE_SLOT = "__minion_state__"


@dataclass(frozen=True)
class DispatchTables:
    public: Mapping[str, Body]
    semiprivate: Mapping[str, Body]
    origins: Mapping[str, str]


# ------------------------------------------------------------------------------
# Generated method bodies
# ------------------------------------------------------------------------------


def _reader(attr_name: str, selector: str) -> Body:
    def reader(self: Minion) -> Any:
        return self[attr_name]

    reader.__name__ = reader.__qualname__ = selector
    return reader


def _writer(attr: AttributeDescriptor, selector: str) -> Body:
    def writer(self: Minion, value: Any) -> Minion:
        check(Subject.ATTRIBUTE, attr.name, value, attr.assert_)
        self[attr.name] = value
        return self

    writer.__name__ = writer.__qualname__ = selector
    return writer


def _forwarder(attr_name: str, target: str, selector: str) -> Body:
    def forward(self: Minion, *args: Any, **kwargs: Any) -> Any:
        return getattr(self[attr_name], target)(*args, **kwargs)

    forward.__name__ = forward.__qualname__ = selector
    return forward


def _assert_helper(schema: AttributeSchema) -> Body:
    def ASSERT(self: Minion, attr_name: str, value: Any) -> None:
        attr = schema.attributes.get(attr_name)
        if attr is None:
            raise SealedRecordViolation(attr_name, type(self).__name__)
        check(Subject.ATTRIBUTE, attr_name, value, attr.assert_)

    return ASSERT


# ------------------------------------------------------------------------------
# Table construction
# ------------------------------------------------------------------------------


def build_dispatch(
    spec: Specification,
    composition: Composition,
    schema: AttributeSchema,
    *,
    meta_name: str = "__meta__",
) -> DispatchTables:
    bodies: dict[str, Body] = {sel: entry.body for sel, entry in composition.methods.items()}
    origins: dict[str, str] = {sel: entry.source for sel, entry in composition.methods.items()}
    accessors: list[str] = []
    forwarded: list[str] = []

    def add(selector: str, body: Body, origin: str) -> None:
        if selector in bodies:
            raise CompositionError(
                f'Cannot have method "{selector}" in both "{origins[selector]}" and "{origin}"',
                sources=(origins[selector], origin),
            )
        bodies[selector] = body
        origins[selector] = origin

    for attr in schema.attributes.values():
        reader = attr.reader_name()
        if reader:
            add(reader, _reader(attr.name, reader), f"reader of {attr.name}")
            accessors.append(reader)
        writer = attr.writer_name()
        if writer:
            add(writer, _writer(attr, writer), f"writer of {attr.name}")
            accessors.append(writer)
        for local, target in expand_handles(attr.handles, meta_name=meta_name).items():
            add(local, _forwarder(attr.name, target, local), f"handles of {attr.name}")
            forwarded.append(local)

    public: dict[str, Body] = {}
    for selector in spec.interface:
        if selector in composition.semiprivate:
            raise SpecError(f'Method "{selector}" cannot be both public and semiprivate')
        if selector not in bodies:
            raise SpecError(f'Interface method "{selector}" is not implemented')
        public[selector] = bodies[selector]
    for selector in accessors:
        public[selector] = bodies[selector]

    semiprivate: dict[str, Body] = {}
    for selector in sorted(composition.semiprivate):
        if selector not in bodies:
            raise SpecError(f'Semiprivate method "{selector}" is not implemented')
        semiprivate[selector] = bodies[selector]
    for selector in forwarded:
        if selector not in public:
            semiprivate[selector] = bodies[selector]
    semiprivate["ASSERT"] = _assert_helper(schema)

    logger.debug("Dispatch: public=%s semiprivate=%s", sorted(public), sorted(semiprivate))
    return DispatchTables(public=public, semiprivate=semiprivate, origins=origins)


# ------------------------------------------------------------------------------
# Compiled class and sealed instances
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class CompiledClass:
    name: str
    attribute_schema: Mapping[str, AttributeDescriptor]
    public_dispatch: Mapping[str, Body]
    semiprivate_dispatch: Mapping[str, Body]
    constructor: Body
    required_params: Mapping[str, ParamDescriptor]
    class_methods: Mapping[str, Body]
    minion_class: type
    utility: Any
    registered: bool = False

    def construct(self, *args: Any, **kwargs: Any) -> Any:
        return self.constructor(self.minion_class, *args, **kwargs)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _compiled(cls: type) -> CompiledClass:
    compiled = cls.__dict__.get("__compiled__")
    if compiled is None:
        raise NoSuchMethod("new", cls.__name__)
    return compiled


class MinionMeta(type):
    """Class-level call surface: only ``class_methods`` resolve."""

    def __new__(mcs, name: str, bases: tuple[type, ...], namespace: dict[str, Any]) -> MinionMeta:
        for base in bases:
            if "__compiled__" in base.__dict__:
                raise CompositionError(f'Class "{base.__name__}" cannot be inherited from')
        return super().__new__(mcs, name, bases, namespace)

    def __getattr__(cls, name: str) -> Any:
        if _is_dunder(name):
            raise AttributeError(name)
        compiled = cls.__dict__.get("__compiled__")
        if compiled is not None:
            body = compiled.class_methods.get(name)
            if body is not None:
                return MethodType(body, cls)
        raise NoSuchMethod(name, cls.__name__)

    def __call__(cls, *args: Any, **kwargs: Any) -> Any:
        return _compiled(cls).construct(*args, **kwargs)

    def __setattr__(cls, name: str, value: Any) -> None:
        raise SealedRecordViolation(name, cls.__name__)

    def __delattr__(cls, name: str) -> None:
        raise SealedRecordViolation(name, cls.__name__)


class Minion(metaclass=MinionMeta):
    """
    Sealed instance. Item access is limited to the declared attributes plus the
    reserved semiprivate handle key; attribute access is the public call surface.
    """

    __slots__ = ("__minion_state__",)

    def __getattribute__(self, name: str) -> Any:
        if name == _STATE_SLOT:
            raise SealedRecordViolation(name, type(self).__name__)
        if _is_dunder(name):
            return object.__getattribute__(self, name)
        compiled = _compiled(type(self))
        body = compiled.public_dispatch.get(name)
        if body is not None:
            return MethodType(body, self)
        if name == "call":
            return partial(call, self)
        raise NoSuchMethod(name, compiled.name, surface="public")

    def __getitem__(self, key: str) -> Any:
        if key == SEMIPRIVATE:
            return SemiprivateHandle(self)
        _check_key(self, key)
        return _state(self)[key]

    def __setitem__(self, key: str, value: Any) -> None:
        _check_key(self, key)
        _state(self)[key] = value

    def __delitem__(self, key: str) -> None:
        raise SealedRecordViolation(key, type(self).__name__)

    def __setattr__(self, name: str, value: Any) -> None:
        raise SealedRecordViolation(name, type(self).__name__)

    def __delattr__(self, name: str) -> None:
        raise SealedRecordViolation(name, type(self).__name__)

    def __dir__(self) -> list[str]:
        return sorted(_compiled(type(self)).public_dispatch)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} minion at {id(self):#x}>"


class SemiprivateHandle:
    """Internal call surface of one instance, reached via ``obj[SEMIPRIVATE]``."""

    __slots__ = ("__owner__",)

    def __init__(self, owner: Minion) -> None:
        object.__setattr__(self, "__owner__", owner)

    def __getattribute__(self, name: str) -> Any:
        if _is_dunder(name):
            return object.__getattribute__(self, name)
        owner = object.__getattribute__(self, "__owner__")
        compiled = _compiled(type(owner))
        body = compiled.semiprivate_dispatch.get(name)
        if body is not None:
            return MethodType(body, owner)
        if name == "call":
            return partial(semiprivate_call, owner)
        raise NoSuchMethod(name, compiled.name, surface="semiprivate")

    def __setattr__(self, name: str, value: Any) -> None:
        raise SealedRecordViolation(name, type(object.__getattribute__(self, "__owner__")).__name__)


def _state(obj: Minion) -> dict[str, Any]:
    return object.__getattribute__(obj, _STATE_SLOT)


def _check_key(obj: Minion, key: object) -> None:
    # key set is the compiled schema, not the state dict
    if not isinstance(key, str) or key not in _compiled(type(obj)).attribute_schema:
        raise SealedRecordViolation(key, type(obj).__name__)


def allocate(cls: type, state: dict[str, Any]) -> Minion:
    obj = object.__new__(cls)
    object.__setattr__(obj, _STATE_SLOT, state)
    return obj


def new_minion_class(name: str, *, doc: str | None = None, module: str | None = None) -> type:
    namespace: dict[str, Any] = {"__slots__": (), "__qualname__": name, "__doc__": doc}
    if module:
        namespace["__module__"] = module
    return MinionMeta(name, (Minion,), namespace)


def seal_class(cls: type, compiled: CompiledClass) -> None:
    type.__setattr__(cls, "__compiled__", compiled)


def call(instance: Minion, selector: str, *args: Any, **kwargs: Any) -> Any:
    compiled = _compiled(type(instance))
    body = compiled.public_dispatch.get(selector)
    if body is None:
        raise NoSuchMethod(selector, compiled.name, surface="public")
    return body(instance, *args, **kwargs)


def semiprivate_call(instance: Minion, selector: str, *args: Any, **kwargs: Any) -> Any:
    compiled = _compiled(type(instance))
    body = compiled.semiprivate_dispatch.get(selector)
    if body is None:
        raise NoSuchMethod(selector, compiled.name, surface="semiprivate")
    return body(instance, *args, **kwargs)
