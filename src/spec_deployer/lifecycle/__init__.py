"""Deployment lifecycle: hooks, file transfer, permissions and the engine driving them."""

from .engine import (
    HOOK_STAGES,
    PIPELINE,
    DeploymentResult,
    DeploymentState,
    LifecycleEngine,
)
from .hooks import HookResult, HookRunner, build_hook_command, resolve_hook_path
from .permissions import PermissionApplier, build_permission_commands
from .transfer import DEFAULT_EXCLUDES, FileTransfer, create_archive, is_excluded

__all__ = [
    "DEFAULT_EXCLUDES",
    "HOOK_STAGES",
    "PIPELINE",
    "DeploymentResult",
    "DeploymentState",
    "FileTransfer",
    "HookResult",
    "HookRunner",
    "LifecycleEngine",
    "PermissionApplier",
    "build_hook_command",
    "build_permission_commands",
    "create_archive",
    "is_excluded",
    "resolve_hook_path",
]
