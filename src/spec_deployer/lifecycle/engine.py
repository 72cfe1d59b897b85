"""The deployment lifecycle state machine.

A run moves through a fixed sequence of states::

    Connecting -> ApplicationStop -> BeforeInstall -> Transferring
      -> SettingPermissions -> AfterInstall -> ApplicationStart
      -> ValidateService -> Done

The first error in any state moves the run to ``Failed``. Nothing that
already happened is undone; re-running is the recovery path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..context import DeploymentContext
from ..errors import ConfigurationError, ConnectionFailedError, DeploymentError
from ..spec import DeploySpec, LifecycleStage
from ..ssh import SSHConnectionError, SSHCredentials, SSHSession
from ..utils.logging import get_logger
from .hooks import HookResult, HookRunner
from .permissions import PermissionApplier
from .transfer import FileTransfer

logger = get_logger(__name__)


class DeploymentState(Enum):
    CONNECTING = "Connecting"
    APPLICATION_STOP = "ApplicationStop"
    BEFORE_INSTALL = "BeforeInstall"
    TRANSFERRING = "Transferring"
    SETTING_PERMISSIONS = "SettingPermissions"
    AFTER_INSTALL = "AfterInstall"
    APPLICATION_START = "ApplicationStart"
    VALIDATE_SERVICE = "ValidateService"
    DONE = "Done"
    FAILED = "Failed"


# Stages entered after the connection is up, in order.
PIPELINE = (
    DeploymentState.APPLICATION_STOP,
    DeploymentState.BEFORE_INSTALL,
    DeploymentState.TRANSFERRING,
    DeploymentState.SETTING_PERMISSIONS,
    DeploymentState.AFTER_INSTALL,
    DeploymentState.APPLICATION_START,
    DeploymentState.VALIDATE_SERVICE,
)

HOOK_STAGES: Dict[DeploymentState, LifecycleStage] = {
    state: LifecycleStage(state.value)
    for state in PIPELINE
    if state.value in {stage.value for stage in LifecycleStage}
}


@dataclass
class DeploymentResult:
    state: DeploymentState = DeploymentState.CONNECTING
    failed_stage: Optional[DeploymentState] = None
    error: Optional[DeploymentError] = None
    completed_stages: List[DeploymentState] = field(default_factory=list)
    hook_results: List[HookResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is DeploymentState.DONE

    def mark_failed(
        self, error: DeploymentError, stage: Optional[DeploymentState] = None
    ) -> "DeploymentResult":
        if stage is not None:
            error.stage = stage.value
        self.state = DeploymentState.FAILED
        self.failed_stage = stage
        self.error = error
        return self


SessionFactory = Callable[[SSHCredentials], SSHSession]
TransferFactory = Callable[[SSHSession], FileTransfer]


class LifecycleEngine:
    """Drives one deployment run over a single transport session."""

    def __init__(
        self,
        session_factory: SessionFactory = SSHSession,
        transfer_factory: TransferFactory = FileTransfer,
    ) -> None:
        self._session_factory = session_factory
        self._transfer_factory = transfer_factory

    def run(self, context: DeploymentContext, spec: Optional[DeploySpec] = None) -> DeploymentResult:
        result = DeploymentResult()
        spec = spec or DeploySpec.empty()

        try:
            context.validate()
        except ConfigurationError as exc:
            return self._fail(result, DeploymentState.CONNECTING, exc)

        self._enter(DeploymentState.CONNECTING)
        logger.info("Connecting to %s:%s...", context.host, context.credentials.port)
        session = self._session_factory(context.credentials)
        try:
            session.connect()
        except SSHConnectionError as exc:
            session.close()
            return self._fail(
                result,
                DeploymentState.CONNECTING,
                ConnectionFailedError(f"Failed to connect to {context.host}: {exc}"),
            )
        result.completed_stages.append(DeploymentState.CONNECTING)

        try:
            handlers = self._stage_handlers(session, context, spec, result)
            for state in PIPELINE:
                result.state = state
                self._enter(state)
                try:
                    handlers[state]()
                except SSHConnectionError as exc:
                    return self._fail(result, state, ConnectionFailedError(str(exc)))
                except DeploymentError as exc:
                    return self._fail(result, state, exc)
                result.completed_stages.append(state)
        finally:
            session.close()

        result.state = DeploymentState.DONE
        logger.info(
            "✓ Deployment completed successfully",
            extra={"stage": DeploymentState.DONE.value, "outcome": "success"},
        )
        return result

    def _stage_handlers(
        self,
        session: SSHSession,
        context: DeploymentContext,
        spec: DeploySpec,
        result: DeploymentResult,
    ) -> Dict[DeploymentState, Callable[[], None]]:
        runner = HookRunner(session)
        transfer = self._transfer_factory(session)
        applier = PermissionApplier(session)

        def hooks(stage: LifecycleStage) -> Callable[[], None]:
            return lambda: self._run_hooks(runner, stage, context, spec, result)

        handlers: Dict[DeploymentState, Callable[[], None]] = {
            state: hooks(stage) for state, stage in HOOK_STAGES.items()
        }
        handlers[DeploymentState.TRANSFERRING] = lambda: transfer.transfer(context)
        handlers[DeploymentState.SETTING_PERMISSIONS] = lambda: applier.apply(
            spec.permissions, context
        )
        return handlers

    def _run_hooks(
        self,
        runner: HookRunner,
        stage: LifecycleStage,
        context: DeploymentContext,
        spec: DeploySpec,
        result: DeploymentResult,
    ) -> None:
        hooks = spec.hooks_for(stage)
        if not hooks:
            logger.info("No hooks defined for %s", stage.value)
            return
        logger.info("Executing %s hooks...", stage.value)
        for hook in hooks:
            hook_result = runner.execute(hook, context)
            result.hook_results.append(hook_result)
            logger.info(
                "Hook %s finished",
                hook.location,
                extra={"stage": stage.value, "hook": hook.location, "outcome": "success"},
            )

    @staticmethod
    def _enter(state: DeploymentState) -> None:
        logger.info("▶ %s", state.value, extra={"stage": state.value, "outcome": "started"})

    @staticmethod
    def _fail(
        result: DeploymentResult, state: DeploymentState, error: DeploymentError
    ) -> DeploymentResult:
        result.mark_failed(error, state)
        logger.error(
            "✗ Deployment failed at %s: %s",
            state.value,
            error,
            extra={
                "stage": state.value,
                "hook": getattr(error, "location", None),
                "outcome": "failed",
            },
        )
        return result
