"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SSHCredentials:
    """Normalized credential payload from CLI/config.

    Exactly one secret is expected: ``password``, or a private key given
    either as text (``private_key``) or as a file (``key_path``).
    """

    host: str
    username: str
    port: int = 22
    password: Optional[str] = None
    private_key: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    timeout: int = 20

    @property
    def auth_method(self) -> str:
        return "password" if self.password else "key"

    def secrets_supplied(self) -> list[str]:
        supplied = []
        if self.password:
            supplied.append("password")
        if self.private_key:
            supplied.append("key")
        if self.key_path:
            supplied.append("key-path")
        return supplied

    def __repr__(self) -> str:
        return (
            f"SSHCredentials(host={self.host!r}, username={self.username!r}, "
            f"port={self.port}, auth_method={self.auth_method!r})"
        )
