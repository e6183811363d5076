"""
Declarative class composition.

`minionize` turns a data-only class specification (interface, implementation,
roles, constructor parameters) into a sealed class whose instances expose only
the declared interface and hold only the declared attributes.
"""

from class_composition.config import SEMIPRIVATE, BuildConfig, load_build_config
from class_composition.constructor import Utility, utility_class
from class_composition.contracts import (
    AttributeDescriptor,
    CompositionError,
    MinionAssertionError,
    MinionError,
    NoSuchMethod,
    ParamDescriptor,
    RegistrationError,
    RoleRequirements,
    SealedRecordViolation,
    SourceDescriptor,
    Specification,
    SpecError,
)
from class_composition.dispatch import CompiledClass, Minion, call, semiprivate_call
from class_composition.engine import compiled_class, minionize
from class_composition.registry import REGISTRY, ClassRegistry, create, get_class

__all__ = [
    "REGISTRY",
    "SEMIPRIVATE",
    "AttributeDescriptor",
    "BuildConfig",
    "ClassRegistry",
    "CompiledClass",
    "CompositionError",
    "Minion",
    "MinionAssertionError",
    "MinionError",
    "NoSuchMethod",
    "ParamDescriptor",
    "RegistrationError",
    "RoleRequirements",
    "SealedRecordViolation",
    "SourceDescriptor",
    "SpecError",
    "Specification",
    "Utility",
    "call",
    "compiled_class",
    "create",
    "get_class",
    "load_build_config",
    "minionize",
    "semiprivate_call",
    "utility_class",
]
