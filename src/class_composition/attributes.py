from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from class_composition.assertions import Subject, check
from class_composition.contracts import (
    AttributeDescriptor,
    CompositionError,
    ParamDescriptor,
    Specification,
)
from class_composition.roles import Composition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributeSchema:
    attributes: Mapping[str, AttributeDescriptor]
    required_params: Mapping[str, ParamDescriptor]

    def defaults(self) -> dict[str, Any]:
        """Fresh default state for one instance."""
        return {name: attr.materialize_default() for name, attr in self.attributes.items()}

    def bind_init_args(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Attribute values taken from constructor parameters, transformed and asserted."""
        bound: dict[str, Any] = {}
        for attr in self.attributes.values():
            if attr.init_arg is None or attr.init_arg not in params:
                continue
            value = params[attr.init_arg]
            if attr.map_init_arg is not None:
                value = attr.map_init_arg(value)
            check(Subject.ATTRIBUTE, attr.name, value, attr.assert_)
            bound[attr.name] = value
        return bound


def _param_attribute(param_name: str, param: ParamDescriptor, attr_name: str) -> AttributeDescriptor:
    return AttributeDescriptor(
        name=attr_name,
        init_arg=param_name,
        reader=param.reader,
        doc=param.doc,
    )


def build_schema(spec: Specification, composition: Composition) -> AttributeSchema:
    """
    Merge the composed attribute map with class-level parameter declarations.
    A parameter materializes as an attribute when it says so, or when a role
    requires an attribute that only the parameter provides.
    """
    attributes = dict(composition.attributes)
    for param_name, param in spec.requires.items():
        attr_name = param.attribute_name(param_name)
        if attr_name is None:
            if param_name in composition.role_required_attributes and param_name not in attributes:
                attr_name = param_name
            else:
                continue
        if attr_name in attributes:
            owner = composition.attribute_sources.get(attr_name, "<class parameters>")
            raise CompositionError(
                f'Cannot have attribute "{attr_name}" in both "{owner}" and class parameter "{param_name}"',
                sources=(owner, f"requires.{param_name}"),
            )
        attributes[attr_name] = _param_attribute(param_name, param, attr_name)

    logger.debug(
        "Attribute schema: %s; parameters: %s",
        ", ".join(attributes) or "<none>",
        ", ".join(spec.requires) or "<none>",
    )
    return AttributeSchema(attributes=attributes, required_params=dict(spec.requires))
