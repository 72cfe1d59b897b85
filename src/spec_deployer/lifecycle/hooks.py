"""Execution of a single deployspec hook on the remote host."""

from __future__ import annotations

import posixpath
import shlex
from dataclasses import dataclass
from typing import Optional

from ..context import DeploymentContext
from ..errors import HookFailure
from ..spec import Hook
from ..ssh import SSHSession
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HookResult:
    location: str
    stdout: str
    stderr: str
    exit_code: int


def resolve_hook_path(target_path: str, location: str) -> str:
    return posixpath.normpath(posixpath.join(target_path, location))


def build_hook_command(script_path: str, runas: Optional[str], connecting_user: str) -> str:
    """Return the shell command that runs ``script_path``.

    A ``runas`` different from the connecting user switches identity with
    non-interactive sudo, so a password prompt fails the hook instead of
    hanging it.
    """
    invocation = f"bash {shlex.quote(script_path)}"
    if runas and runas != connecting_user:
        return f"sudo -n -u {shlex.quote(runas)} {invocation}"
    return invocation


class HookRunner:
    """Runs hooks through an open session and classifies the outcome."""

    def __init__(self, session: SSHSession) -> None:
        self.session = session

    def execute(self, hook: Hook, context: DeploymentContext) -> HookResult:
        script_path = resolve_hook_path(context.target_path, hook.location)
        runas = hook.runas or context.user
        command = build_hook_command(script_path, runas, context.user)

        logger.info("Running %s (timeout: %ss, runas: %s)", hook.location, hook.timeout, runas)
        result = self.session.run(
            command,
            cwd=context.target_path,
            timeout=hook.timeout,
            stream_output=context.stream_output,
        )

        if result.timed_out:
            logger.warning(
                "%s exceeded %ss; the channel was closed but the remote process may still be running",
                hook.location,
                hook.timeout,
            )
            raise HookFailure(
                hook.location,
                exit_code=result.exit_status,
                stdout=result.stdout,
                stderr=result.stderr,
                timed_out=True,
                timeout=hook.timeout,
            )
        if result.exit_status != 0:
            raise HookFailure(
                hook.location,
                exit_code=result.exit_status,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        logger.info("✓ %s completed successfully", hook.location)
        if result.stdout:
            logger.info("Output: %s", result.stdout)
        return HookResult(
            location=hook.location,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_status,
        )
