"""Deployspec data model and loader."""

from .loader import load_deployspec, parse_deployspec
from .models import (
    DEFAULT_HOOK_TIMEOUT,
    DeploySpec,
    Hook,
    LifecycleStage,
    PermissionRule,
    normalize_mode,
)

__all__ = [
    "DEFAULT_HOOK_TIMEOUT",
    "DeploySpec",
    "Hook",
    "LifecycleStage",
    "PermissionRule",
    "load_deployspec",
    "normalize_mode",
    "parse_deployspec",
]
