# class_composition/registry.py
from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from class_composition.contracts import NoSuchMethod, RegistrationError

logger = logging.getLogger(__name__)


class ClassRegistry:
    """Process-wide name -> compiled class table, filled once per class at build time."""

    def __init__(self) -> None:
        self._classes: dict[str, type] = {}

    def check_available(self, name: str, *, replace: bool = False) -> None:
        if name in self._classes and not replace:
            raise RegistrationError(name)

    def register(self, name: str, cls: type, *, replace: bool = False) -> None:
        self.check_available(name, replace=replace)
        if name in self._classes:
            logger.warning("Replacing registered class %s", name)
        self._classes[name] = cls
        logger.info("Registered class %s", name)

    def get(self, name: str) -> Optional[type]:
        return self._classes.get(name)

    def __getitem__(self, name: str) -> type:
        return self._classes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._classes))

    def __len__(self) -> int:
        return len(self._classes)

    def names(self) -> list[str]:
        return sorted(self._classes)

    def unregister(self, name: str) -> Optional[type]:
        return self._classes.pop(name, None)

    def clear(self) -> None:
        self._classes.clear()

    def create(self, name: str, /, *args: Any, **kwargs: Any) -> Any:
        cls = self._classes.get(name)
        if cls is None:
            raise NoSuchMethod("new", name)
        return cls.__compiled__.construct(*args, **kwargs)


REGISTRY = ClassRegistry()


def get_class(name: str) -> Optional[type]:
    return REGISTRY.get(name)


def create(name: str, /, *args: Any, **kwargs: Any) -> Any:
    return REGISTRY.create(name, *args, **kwargs)
