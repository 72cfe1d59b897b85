"""Error taxonomy for a deployment run.

Every failure is fatal to the run. The engine fills in ``stage`` so the
caller can report exactly where the deployment stopped.
"""

from __future__ import annotations

from typing import Optional


class DeploymentError(RuntimeError):
    """Base class for all errors that terminate a deployment run."""

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class ConfigurationError(DeploymentError):
    """Missing or contradictory run parameters, detected before connecting."""


class ConnectionFailedError(DeploymentError):
    """The transport session could not be established."""


class SpecLoadError(DeploymentError):
    """The deployspec exists but cannot be parsed or is structurally invalid."""


class TransferError(DeploymentError):
    """Packaging, upload, directory creation or extraction failed."""


class HookFailure(DeploymentError):
    """A hook script exited non-zero or exceeded its timeout."""

    def __init__(
        self,
        location: str,
        *,
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
        timeout: Optional[int] = None,
        stage: Optional[str] = None,
    ) -> None:
        self.location = location
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.timed_out = timed_out
        self.timeout = timeout
        super().__init__(self._format_message(), stage=stage)

    def _format_message(self) -> str:
        if self.timed_out:
            headline = f"Hook {self.location} timed out after {self.timeout}s"
        else:
            headline = f"Hook {self.location} failed with exit code {self.exit_code}"
        lines = [headline]
        if self.stderr:
            lines.append(f"Stderr: {self.stderr}")
        if self.stdout:
            lines.append(f"Stdout: {self.stdout}")
        return "\n".join(lines)


class PermissionApplyError(DeploymentError):
    """A chmod/chown command issued for a permission rule failed."""

    def __init__(
        self,
        command: str,
        *,
        exit_code: int,
        stderr: str = "",
        stdout: str = "",
        stage: Optional[str] = None,
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        message = f"Permission command failed with exit code {exit_code}: {command}"
        if stderr:
            message += f"\nStderr: {stderr}"
        super().__init__(message, stage=stage)
