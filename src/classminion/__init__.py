"""
class-minion distribution import namespace.

Re-exports the core `class_composition` package so callers can write
`from classminion import minionize`.
"""

from importlib.metadata import PackageNotFoundError, version

# src/classminion/__init__.py
import class_composition as _core
from class_composition import *  # noqa: F401,F403

try:
    from ._version import __version__  # written by the build backend
except ImportError:  # pragma: no cover - editable/local checkouts without a build step
    try:
        __version__ = version("class-minion")
    except PackageNotFoundError:
        __version__ = "0+unknown"

__all__ = [*_core.__all__, "__version__"]
