"""SSH transport for spec-deployer."""

from .credentials import SSHCredentials
from .session import (
    SSHCommandResult,
    SSHConnectionError,
    SSHSession,
    SSHTransferError,
    load_private_key,
)

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
    "SSHTransferError",
    "load_private_key",
]
