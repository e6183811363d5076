# class_composition/stable_ids.py
from __future__ import annotations

import hashlib
import json
from typing import Any

from class_composition.contracts import Specification
from class_composition.roles import Composition, source_names

ANONYMOUS_PREFIX = "Minion_"


def _sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _canon(obj: Any) -> str:
    """
    Canonical JSON string (stable across runs) for hashing.
    """
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def class_shape(spec: Specification, composition: Composition) -> dict[str, Any]:
    return {
        "interface": list(spec.interface),
        "sources": source_names(composition),
        "attributes": sorted(composition.attributes),
        "params": sorted(spec.requires),
    }


def derive_anonymous_name(spec: Specification, composition: Composition) -> str:
    """
    Name for a class built without `name`. Deterministic in the class shape,
    so error messages stay stable across runs. Never registered.
    """
    return ANONYMOUS_PREFIX + _sha256_hex(_canon(class_shape(spec, composition)))[:12]
