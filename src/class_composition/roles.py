# class_composition/roles.py
from __future__ import annotations

import importlib
import inspect
import logging
import types
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from class_composition.config import SEMIPRIVATE
from class_composition.contracts import (
    AttributeDescriptor,
    CompositionError,
    SourceDescriptor,
    Specification,
    SpecError,
    spec_error_from_validation,
)
from class_composition.spec_validator import RESERVED_SELECTORS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodEntry:
    selector: str
    body: Callable[..., Any]
    source: str


@dataclass(frozen=True)
class Composition:
    """Flat method/attribute namespace of an implementation and its roles."""

    methods: Mapping[str, MethodEntry]
    attributes: Mapping[str, AttributeDescriptor]
    attribute_sources: Mapping[str, str]
    semiprivate: frozenset[str]
    sources: tuple[SourceDescriptor, ...] = field(default_factory=tuple)
    role_required_attributes: frozenset[str] = frozenset()


# ------------------------------------------------------------------------------
# Source resolution
# ------------------------------------------------------------------------------


def _import_reference(ref: str) -> Any:
    module_name, _, attr = ref.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise SpecError(f'Cannot load method source "{ref}": {exc}') from exc
    if attr:
        try:
            for part in attr.split("."):
                target = getattr(target, part)
        except AttributeError as exc:
            raise SpecError(f'Cannot load method source "{ref}": no attribute "{attr}"') from exc
    return target


def namespace_methods(obj: Any, keep: set[str]) -> dict[str, Callable[..., Any]]:
    if isinstance(obj, types.ModuleType):
        candidates = {
            name: fn
            for name, fn in vars(obj).items()
            if inspect.isfunction(fn) and fn.__module__ == obj.__name__
        }
    else:
        candidates = {name: fn for name, fn in vars(obj).items() if inspect.isfunction(fn)}
    return {name: fn for name, fn in candidates.items() if not name.startswith("_") or name in keep}


def _source_from_namespace(obj: Any, *, meta_name: str) -> SourceDescriptor:
    meta = getattr(obj, meta_name, None) or {}
    if not isinstance(meta, Mapping):
        raise SpecError(f"{meta_name} of {obj!r} must be a mapping")
    if isinstance(obj, types.ModuleType):
        default_name = obj.__name__
    else:
        default_name = f"{obj.__module__}.{obj.__qualname__}"

    semiprivate = meta.get("semiprivate") or []
    if isinstance(semiprivate, str):
        semiprivate = [semiprivate]
    methods = namespace_methods(obj, keep=set(semiprivate))
    methods.update(meta.get("methods") or {})

    data = {**meta, "name": meta.get("name") or default_name, "methods": methods}
    return _validated_source(data, label=default_name)


def _validated_source(data: Mapping[str, Any], *, label: str) -> SourceDescriptor:
    try:
        return SourceDescriptor.model_validate(data)
    except ValidationError as exc:
        raise spec_error_from_validation(exc, context=f'method source "{label}"') from exc


def resolve_source(ref: Any, *, fallback_name: str, meta_name: str = "__meta__") -> SourceDescriptor:
    """
    Normalize an implementation/role reference into a SourceDescriptor.
    Accepts a descriptor, an inline mapping, a module, a class, or an
    importable "pkg.module[:Attr]" name.
    """
    if isinstance(ref, SourceDescriptor):
        return ref if ref.name else ref.model_copy(update={"name": fallback_name})
    if isinstance(ref, Mapping):
        data = dict(ref)
        data.setdefault("name", fallback_name)
        return _validated_source(data, label=str(data["name"]))
    if isinstance(ref, str):
        ref = _import_reference(ref)
    if isinstance(ref, (types.ModuleType, type)):
        return _source_from_namespace(ref, meta_name=meta_name)
    raise SpecError(f"Cannot use {ref!r} as a method source")


def expand_handles(handles: Any, *, meta_name: str = "__meta__") -> dict[str, str]:
    """Map local selector -> selector invoked on the delegate."""
    if handles is None:
        return {}
    if isinstance(handles, list):
        return {selector: selector for selector in handles}
    if isinstance(handles, dict):
        return dict(handles)
    role = resolve_source(handles, fallback_name="<handles>", meta_name=meta_name)
    return {selector: selector for selector in role.declared_selectors()}


# ------------------------------------------------------------------------------
# Composition
# ------------------------------------------------------------------------------


@dataclass
class _SourceIndex:
    """Sources already composed, keyed by the identity of the object that declared them."""

    seen: dict[int, Any] = field(default_factory=dict)
    names: dict[str, int] = field(default_factory=dict)
    out: list[SourceDescriptor] = field(default_factory=list)

    def add(self, target: Any, source: SourceDescriptor) -> None:
        key = id(target)
        owner = self.names.get(source.name)
        if owner is not None and owner != key:
            raise CompositionError(
                f'Two different sources are named "{source.name}"',
                sources=(source.name, source.name),
            )
        # hold the target so its id stays unique for the whole composition
        self.seen[key] = target
        self.names[source.name] = key
        self.out.append(source)


def _declaring_object(ref: Any) -> Any:
    return _import_reference(ref) if isinstance(ref, str) else ref


def _flatten_roles(
    refs: list[Any],
    *,
    meta_name: str,
    trail: tuple[tuple[int, str], ...],
    index: _SourceIndex,
) -> None:
    for ref in refs:
        target = _declaring_object(ref)
        role = resolve_source(target, fallback_name=f"<role {len(index.out) + 1}>", meta_name=meta_name)
        key = id(target)
        if any(key == visited for visited, _ in trail):
            cycle = " -> ".join([*(name for _, name in trail), role.name])
            raise CompositionError(f'Role "{role.name}" composes itself ({cycle})', sources=(role.name,))
        if key in index.seen:
            continue
        index.add(target, role)
        _flatten_roles(role.roles, meta_name=meta_name, trail=(*trail, (key, role.name)), index=index)


def _conflict(kind: str, name: str, first: str, second: str) -> CompositionError:
    return CompositionError(
        f'Cannot have {kind} "{name}" in both "{first}" and "{second}"',
        sources=(first, second),
    )


def _generated_selectors(
    attributes: Mapping[str, AttributeDescriptor], spec: Specification, *, meta_name: str
) -> set[str]:
    selectors: set[str] = set()
    for attr in attributes.values():
        for name in (attr.reader_name(), attr.writer_name()):
            if name:
                selectors.add(name)
        selectors.update(expand_handles(attr.handles, meta_name=meta_name))
    for param_name, param in spec.requires.items():
        attr_name = param.attribute_name(param_name)
        if attr_name and param.reader:
            selectors.add(param.reader if isinstance(param.reader, str) else attr_name)
    return selectors


def compose(spec: Specification, *, meta_name: str = "__meta__") -> Composition:
    index = _SourceIndex()
    nested: list[Any] = []
    if spec.implementation is not None:
        target = _declaring_object(spec.implementation)
        impl = resolve_source(target, fallback_name="<implementation>", meta_name=meta_name)
        if impl.role:
            raise SpecError(f'"{impl.name}" is a role and cannot be used as an implementation')
        index.add(target, impl)
        nested = impl.roles
    _flatten_roles([*spec.roles, *nested], meta_name=meta_name, trail=(), index=index)
    sources = index.out

    methods: dict[str, MethodEntry] = {}
    attributes: dict[str, AttributeDescriptor] = {}
    attribute_sources: dict[str, str] = {}
    semiprivate: set[str] = set()

    for source in sources:
        for selector, body in source.methods.items():
            if selector in RESERVED_SELECTORS:
                raise CompositionError(
                    f'Method "{selector}" in "{source.name}" clashes with a generated helper',
                    sources=(source.name,),
                )
            existing = methods.get(selector)
            if existing is not None:
                raise _conflict("method", selector, existing.source, source.name)
            methods[selector] = MethodEntry(selector=selector, body=body, source=source.name)

        for attr_name, desc in source.has.items():
            if attr_name == SEMIPRIVATE or not attr_name.isidentifier():
                raise SpecError(f'Invalid attribute name "{attr_name}" in "{source.name}"')
            if attr_name in attributes:
                raise _conflict("attribute", attr_name, attribute_sources[attr_name], source.name)
            attributes[attr_name] = desc.model_copy(update={"name": attr_name})
            attribute_sources[attr_name] = source.name

        semiprivate.update(source.semiprivate)

    if "BUILD" in methods:
        semiprivate.add("BUILD")

    available_methods = set(methods) | _generated_selectors(attributes, spec, meta_name=meta_name)
    available_attrs = set(attributes) | set(spec.requires)
    for param_name, param in spec.requires.items():
        attr_name = param.attribute_name(param_name)
        if attr_name:
            available_attrs.add(attr_name)

    role_required: set[str] = set()
    for source in sources:
        for selector in source.requires.methods:
            if selector not in available_methods:
                raise CompositionError(
                    f'Method "{selector}", required by role "{source.name}", is not implemented',
                    sources=(source.name,),
                )
        for attr_name in source.requires.attributes:
            if attr_name not in available_attrs:
                raise CompositionError(
                    f'Attribute "{attr_name}", required by role "{source.name}", is not defined',
                    sources=(source.name,),
                )
        role_required.update(source.requires.attributes)

    logger.debug(
        "Composed %d source(s): %d method(s), %d attribute(s)",
        len(sources),
        len(methods),
        len(attributes),
    )
    return Composition(
        methods=methods,
        attributes=attributes,
        attribute_sources=attribute_sources,
        semiprivate=frozenset(semiprivate),
        sources=tuple(sources),
        role_required_attributes=frozenset(role_required),
    )


def source_names(composition: Composition) -> list[str]:
    return [source.name for source in composition.sources]

