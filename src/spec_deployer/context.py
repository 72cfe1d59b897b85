"""Immutable run parameters for a single deployment."""

from __future__ import annotations

import hashlib
import itertools
import os
import time
from dataclasses import dataclass, field

from .errors import ConfigurationError
from .ssh import SSHCredentials

_RUN_COUNTER = itertools.count()


def _generate_run_id(host: str) -> str:
    token = f"{host}-{time.time_ns()}-{os.getpid()}-{next(_RUN_COUNTER)}".encode("utf-8")
    return hashlib.sha1(token).hexdigest()[:12]


@dataclass(frozen=True)
class DeploymentContext:
    """Everything one run needs to know about where and what to deploy.

    ``run_id`` is unique per run and keeps temporary archive names apart
    when several runs share a machine.
    """

    credentials: SSHCredentials
    target_path: str
    source_path: str = "."
    deployspec_path: str = "deployspec.yml"
    stream_output: bool = False
    run_id: str = field(default="")

    def __post_init__(self) -> None:
        if not self.run_id:
            object.__setattr__(self, "run_id", _generate_run_id(self.credentials.host or "local"))

    @property
    def host(self) -> str:
        return self.credentials.host

    @property
    def user(self) -> str:
        return self.credentials.username

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` unless the run can be attempted."""
        missing = []
        if not self.credentials.host:
            missing.append("host")
        if not self.credentials.username:
            missing.append("user")
        if not self.target_path:
            missing.append("target-path")
        if missing:
            raise ConfigurationError("Missing required run parameters: " + ", ".join(missing))
        if not 0 < self.credentials.port < 65536:
            raise ConfigurationError(f"Invalid SSH port: {self.credentials.port}")

        secrets = self.credentials.secrets_supplied()
        if not secrets:
            raise ConfigurationError("Either password or key must be provided")
        if len(secrets) > 1:
            raise ConfigurationError(
                "Exactly one credential must be provided, got: " + ", ".join(secrets)
            )
