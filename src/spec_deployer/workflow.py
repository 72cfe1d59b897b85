"""High-level workflow orchestration."""

from __future__ import annotations

import functools
from typing import Optional

from .config import AppConfig
from .context import DeploymentContext
from .errors import ConfigurationError, SpecLoadError
from .lifecycle import DeploymentResult, FileTransfer, LifecycleEngine
from .lifecycle.engine import SessionFactory
from .spec import load_deployspec
from .ssh import SSHSession
from .utils.logging import get_logger

logger = get_logger(__name__)


class DeploymentWorkflow:
    """Loads the deployspec for a run and hands it to the lifecycle engine.

    Both the parameter check and the deployspec load happen before any
    connection is opened, so neither failure touches the remote host.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        session_factory: SessionFactory = SSHSession,
    ) -> None:
        self.config = config or AppConfig()
        transfer_config = self.config.transfer
        self.engine = LifecycleEngine(
            session_factory=session_factory,
            transfer_factory=functools.partial(
                FileTransfer,
                excludes=transfer_config.excludes,
                remote_tmp_dir=transfer_config.remote_tmp_dir,
                local_tmp_dir=transfer_config.local_tmp_dir,
            ),
        )

    def run_deploy(self, context: DeploymentContext) -> DeploymentResult:
        logger.info(
            "Preparing deployment of %s to %s:%s (run %s)",
            context.source_path,
            context.host,
            context.target_path,
            context.run_id,
        )
        try:
            context.validate()
            spec = load_deployspec(context.deployspec_path)
        except (ConfigurationError, SpecLoadError) as exc:
            logger.error("✗ Deployment failed before connecting: %s", exc)
            return DeploymentResult().mark_failed(exc)
        return self.engine.run(context, spec)
