from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from class_composition.contracts import MinionAssertionError


class Subject(str, Enum):
    PARAMETER = "Parameter"
    ATTRIBUTE = "Attribute"


MISSING_DESCRIPTION = "provided"


@dataclass(frozen=True)
class AssertionOutcome:
    passed: bool
    description: Optional[str] = None

    def raise_for(self, subject: Subject, name: str) -> None:
        if not self.passed:
            raise MinionAssertionError(subject.value, name, self.description or "valid")


_OK = AssertionOutcome(passed=True)


def validate(value: Any, predicates: Mapping[str, Callable[[Any], Any]]) -> AssertionOutcome:
    """
    Run predicates in declaration order and report the first one that fails.
    Exceptions raised by a predicate propagate to the caller.
    """
    for description, predicate in predicates.items():
        if not predicate(value):
            return AssertionOutcome(passed=False, description=description)
    return _OK


def check(
    subject: Subject,
    name: str,
    value: Any,
    predicates: Mapping[str, Callable[[Any], Any]],
) -> None:
    validate(value, predicates).raise_for(subject, name)


def missing(subject: Subject, name: str) -> MinionAssertionError:
    return MinionAssertionError(subject.value, name, MISSING_DESCRIPTION)
