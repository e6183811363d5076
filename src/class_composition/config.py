"""Build-time configuration for the composition pipeline.

Resolution order (highest priority first):
1. Programmatic (``BuildConfig`` passed to ``minionize``)
2. Environment variables (``CLASS_MINION_ON_REREGISTER``)
3. Hardcoded defaults
"""

from __future__ import annotations

import logging
import os
from typing import Literal

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

SEMIPRIVATE = "__"

ReregisterPolicy = Literal["error", "replace"]
_POLICIES = ("error", "replace")


class BuildConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    constructor_name: str = "new"
    meta_name: str = "__meta__"
    on_reregister: ReregisterPolicy = "error"


def load_build_config() -> BuildConfig:
    overrides: dict[str, str] = {}
    if val := os.environ.get("CLASS_MINION_ON_REREGISTER"):
        if val in _POLICIES:
            overrides["on_reregister"] = val
        else:
            logger.warning("Invalid CLASS_MINION_ON_REREGISTER=%r, ignoring", val)
    return BuildConfig(**overrides)
