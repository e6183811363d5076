# class_composition/contracts.py
from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from typing_extensions import Self

# ------------------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------------------


class MinionError(Exception):
    """Base class for every error raised by the composition pipeline."""


class SpecError(MinionError, ValueError):
    """Malformed or incomplete class specification."""


class RegistrationError(SpecError):
    """A class name is already taken in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Class "{name}" is already registered')


class CompositionError(MinionError, ValueError):
    """Name conflict between sources, or an unmet role requirement."""

    def __init__(self, message: str, *, sources: tuple[str, ...] = ()) -> None:
        self.sources = sources
        super().__init__(message)


class MinionAssertionError(MinionError, AssertionError):
    """A parameter or attribute value failed a declared predicate."""

    def __init__(self, kind: str, name: str, description: str) -> None:
        self.kind = kind
        self.name = name
        self.description = description
        super().__init__(f"{kind} '{name}' is not {describe_predicate(description)}")


class NoSuchMethod(MinionError, AttributeError):
    """
    Call to a selector that is not on the requested call surface.

    Class-level misses read ``Can't locate object method "<sel>" via package
    "<name>"``. Instance-level misses (``surface`` "public" or "semiprivate")
    append `` (no such <surface> method "<sel>" on class "<name>")`` to that same
    text, so match instance messages by prefix or substring, not equality.
    """

    def __init__(self, selector: str, class_name: str, *, surface: str = "class") -> None:
        self.selector = selector
        self.class_name = class_name
        self.surface = surface
        message = f'Can\'t locate object method "{selector}" via package "{class_name}"'
        if surface != "class":
            message += f' (no such {surface} method "{selector}" on class "{class_name}")'
        super().__init__(message)


class SealedRecordViolation(MinionError, KeyError):
    """Access to a key outside an instance's declared attribute set."""

    def __init__(self, key: object, class_name: str) -> None:
        self.key = key
        self.class_name = class_name
        super().__init__(f"Attempt to access disallowed key '{key}' in a restricted hash")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


def describe_predicate(description: str) -> str:
    text = description[3:] if description.startswith("is_") else description
    return text.replace("_", " ")


def spec_error_from_validation(exc: ValidationError, *, context: str) -> SpecError:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        problems.append(f"{loc}: {err.get('msg', 'invalid')}")
    return SpecError(f"Invalid {context}: " + "; ".join(problems))


# ------------------------------------------------------------------------------
# Shared BaseModel config
# ------------------------------------------------------------------------------

_SPEC_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    populate_by_name=True,
    arbitrary_types_allowed=True,
)

Predicate = Callable[[Any], Any]
PredicateMap = dict[str, Predicate]

_MUTABLE_LITERALS = (list, dict, set, bytearray)


class SourceKind(str, Enum):
    IMPLEMENTATION = "implementation"
    ROLE = "role"


def _check_default(value: Any) -> Any:
    if isinstance(value, _MUTABLE_LITERALS):
        raise ValueError(
            f"mutable default {type(value).__name__} would be shared between instances; "
            "wrap it in a zero-argument producer"
        )
    return value


def _selector_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


# ------------------------------------------------------------------------------
# Descriptors
# ------------------------------------------------------------------------------


class ParamDescriptor(BaseModel):
    """A class-level constructor parameter (``requires`` / ``construct_with``)."""

    model_config = _SPEC_CONFIG

    assert_: PredicateMap = Field(default_factory=dict, alias="assert")
    attribute: bool | str = False
    reader: bool | str = False
    default: Any = None
    optional: bool = False
    doc: str | None = None

    @field_validator("default")
    @classmethod
    def _reject_shared_default(cls, value: Any) -> Any:
        return _check_default(value)

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    def attribute_name(self, param_name: str) -> str | None:
        """Name under which this parameter is stored, if it materializes at all."""
        if isinstance(self.attribute, str) and self.attribute:
            return self.attribute
        if self.attribute or self.reader:
            return param_name
        return None


class AttributeDescriptor(BaseModel):
    model_config = _SPEC_CONFIG

    name: str = ""
    default: Any = None
    assert_: PredicateMap = Field(default_factory=dict, alias="assert")
    init_arg: str | None = None
    map_init_arg: Callable[[Any], Any] | None = None
    handles: Any = None
    reader: bool | str = False
    writer: bool | str = False
    doc: str | None = None

    @field_validator("default")
    @classmethod
    def _reject_shared_default(cls, value: Any) -> Any:
        return _check_default(value)

    @field_validator("handles", mode="before")
    @classmethod
    def _normalize_handles(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if not all(isinstance(item, str) for item in value):
                raise ValueError("handles list must contain selector names")
            return list(value)
        if isinstance(value, Mapping):
            if not all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
                raise ValueError("handles mapping must map selector names to selector names")
            return dict(value)
        return value

    def materialize_default(self) -> Any:
        if callable(self.default):
            return self.default()
        return self.default

    def reader_name(self) -> str | None:
        if isinstance(self.reader, str) and self.reader:
            return self.reader
        return self.name if self.reader else None

    def writer_name(self) -> str | None:
        if isinstance(self.writer, str) and self.writer:
            return self.writer
        return f"set_{self.name}" if self.writer else None


class RoleRequirements(BaseModel):
    model_config = _SPEC_CONFIG

    methods: list[str] = Field(default_factory=list)
    attributes: list[str] = Field(default_factory=list)

    @field_validator("methods", "attributes", mode="before")
    @classmethod
    def _as_lists(cls, value: Any) -> Any:
        return _selector_list(value)


class SourceDescriptor(BaseModel):
    """
    One method/attribute source: the implementation or a role.
    Module- and class-based sources are normalized into this shape.
    """

    model_config = _SPEC_CONFIG

    name: str = ""
    role: bool = False
    interface: list[str] | None = None
    methods: dict[str, Callable[..., Any]] = Field(default_factory=dict)
    has: dict[str, AttributeDescriptor] = Field(default_factory=dict)
    semiprivate: list[str] = Field(default_factory=list)
    requires: RoleRequirements = Field(default_factory=RoleRequirements)
    roles: list[Any] = Field(default_factory=list)

    @field_validator("semiprivate", "interface", mode="before")
    @classmethod
    def _as_lists(cls, value: Any) -> Any:
        return _selector_list(value)

    @property
    def kind(self) -> SourceKind:
        return SourceKind.ROLE if self.role else SourceKind.IMPLEMENTATION

    def declared_selectors(self) -> list[str]:
        """Selectors a ``handles`` reference to this source expands to."""
        if self.interface is not None:
            return list(self.interface)
        hidden = set(self.semiprivate) | {"BUILD"}
        return [sel for sel in self.methods if sel not in hidden]


class Specification(BaseModel):
    """Declarative description of one class. Consumed once by ``minionize``."""

    model_config = _SPEC_CONFIG

    name: str | None = None
    interface: list[str] = Field(default_factory=list)
    implementation: Any = None
    roles: list[Any] = Field(default_factory=list)
    requires: dict[str, ParamDescriptor] = Field(
        default_factory=dict, validation_alias=AliasChoices("requires", "construct_with")
    )
    build_args: Callable[..., Any] | None = None
    class_methods: dict[str, Callable[..., Any]] = Field(default_factory=dict)
    doc: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _merge_param_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        if "requires" in data and "construct_with" in data:
            requires = data["requires"] or {}
            construct_with = data["construct_with"] or {}
            if not isinstance(requires, Mapping) or not isinstance(construct_with, Mapping):
                return data
            shared = sorted(set(requires) & set(construct_with))
            if shared:
                raise ValueError(f"parameters declared in both requires and construct_with: {shared}")
            merged = {k: v for k, v in data.items() if k != "construct_with"}
            merged["requires"] = {**requires, **construct_with}
            return merged
        return data

    @field_validator("interface", mode="before")
    @classmethod
    def _interface_list(cls, value: Any) -> Any:
        if value is None:
            return []
        return _selector_list(value)

    @field_validator("roles", mode="before")
    @classmethod
    def _roles_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]

    @property
    def construct_with(self) -> dict[str, ParamDescriptor]:
        return self.requires

    @classmethod
    def parse(cls, raw: Specification | Mapping[str, Any]) -> Self:
        if isinstance(raw, cls):
            return raw
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise spec_error_from_validation(exc, context="class specification") from exc
