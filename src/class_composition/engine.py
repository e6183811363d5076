# class_composition/engine.py
from __future__ import annotations

import inspect
import logging
import sys
from types import FrameType
from typing import Any, Mapping, Optional

from class_composition.attributes import build_schema
from class_composition.config import BuildConfig, load_build_config
from class_composition.constructor import Utility, make_default_constructor
from class_composition.contracts import Specification, SpecError
from class_composition.dispatch import (
    CompiledClass,
    build_dispatch,
    new_minion_class,
    seal_class,
)
from class_composition.registry import REGISTRY, ClassRegistry
from class_composition.roles import compose, namespace_methods
from class_composition.spec_validator import validate_specification
from class_composition.stable_ids import derive_anonymous_name

logger = logging.getLogger(__name__)


def _implicit_specification(frame: FrameType, meta_name: str) -> dict[str, Any]:
    """Read the calling module's metadata binding; the module is the default implementation."""
    module_globals = frame.f_globals
    module_name = str(module_globals.get("__name__", "__main__"))
    meta = module_globals.get(meta_name)
    if not isinstance(meta, Mapping):
        raise SpecError(f'No specification given and module "{module_name}" defines no {meta_name} mapping')

    data = dict(meta)
    data.setdefault("name", module_name)
    if data.get("implementation") is None:
        module = sys.modules.get(module_name)
        if module is None:
            raise SpecError(f'Module "{module_name}" is not importable; pass an implementation explicitly')
        semiprivate = data.pop("semiprivate", None) or []
        if isinstance(semiprivate, str):
            semiprivate = [semiprivate]
        data["implementation"] = {
            "name": module_name,
            "methods": namespace_methods(module, keep=set(semiprivate)),
            "semiprivate": semiprivate,
            "has": data.pop("has", None) or {},
        }
    return data


def minionize(
    spec: Optional[Specification | Mapping[str, Any]] = None,
    *,
    registry: Optional[ClassRegistry] = None,
    config: Optional[BuildConfig] = None,
) -> type:
    """
    Compile a class specification into a sealed class.

    Runs validation, role composition, attribute schema resolution, dispatch
    table construction and constructor synthesis, in that order. A named class
    is registered only after every step succeeded.
    """
    config = config or load_build_config()
    registry = REGISTRY if registry is None else registry
    caller = inspect.currentframe()
    caller = caller.f_back if caller is not None else None
    caller_module = caller.f_globals.get("__name__") if caller is not None else None

    if spec is None:
        if caller is None:
            raise SpecError("No specification given and no calling module to read it from")
        spec = _implicit_specification(caller, config.meta_name)

    parsed = validate_specification(spec)
    composition = compose(parsed, meta_name=config.meta_name)
    schema = build_schema(parsed, composition)
    tables = build_dispatch(parsed, composition, schema, meta_name=config.meta_name)

    replace = config.on_reregister == "replace"
    if parsed.name:
        registry.check_available(parsed.name, replace=replace)
    name = parsed.name or derive_anonymous_name(parsed, composition)

    minion_class = new_minion_class(name, doc=parsed.doc, module=caller_module)
    utility = Utility(
        minion_class=minion_class,
        schema=schema,
        build_hook=tables.semiprivate.get("BUILD"),
    )
    class_methods = dict(parsed.class_methods)
    if config.constructor_name not in class_methods:
        class_methods[config.constructor_name] = make_default_constructor(utility, parsed.build_args)
    elif parsed.build_args is not None:
        logger.debug("%s: custom %s() supplied, build_args left to it", name, config.constructor_name)

    compiled = CompiledClass(
        name=name,
        attribute_schema=schema.attributes,
        public_dispatch=tables.public,
        semiprivate_dispatch=tables.semiprivate,
        constructor=class_methods[config.constructor_name],
        required_params=schema.required_params,
        class_methods=class_methods,
        minion_class=minion_class,
        utility=utility,
        registered=bool(parsed.name),
    )
    seal_class(minion_class, compiled)

    if parsed.name:
        registry.register(parsed.name, minion_class, replace=replace)
    logger.debug(
        "Compiled %s: %d public, %d semiprivate, %d attribute(s)",
        name,
        len(tables.public),
        len(tables.semiprivate),
        len(schema.attributes),
    )
    return minion_class


def compiled_class(cls: type) -> CompiledClass:
    compiled = cls.__dict__.get("__compiled__")
    if compiled is None:
        raise SpecError(f"{cls!r} is not a compiled minion class")
    return compiled
