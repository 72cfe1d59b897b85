"""spec-deployer: deployspec-driven deployments over SSH."""

from .context import DeploymentContext
from .errors import (
    ConfigurationError,
    ConnectionFailedError,
    DeploymentError,
    HookFailure,
    PermissionApplyError,
    SpecLoadError,
    TransferError,
)
from .lifecycle import DeploymentResult, DeploymentState, LifecycleEngine
from .spec import DeploySpec, Hook, LifecycleStage, PermissionRule, load_deployspec
from .workflow import DeploymentWorkflow

__all__ = [
    "ConfigurationError",
    "ConnectionFailedError",
    "DeploySpec",
    "DeploymentContext",
    "DeploymentError",
    "DeploymentResult",
    "DeploymentState",
    "DeploymentWorkflow",
    "Hook",
    "HookFailure",
    "LifecycleEngine",
    "LifecycleStage",
    "PermissionApplyError",
    "PermissionRule",
    "SpecLoadError",
    "TransferError",
    "load_deployspec",
]
