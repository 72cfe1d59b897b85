"""SSH session management built on Paramiko."""

from __future__ import annotations

import codecs
import io
import shlex
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import paramiko

from ..utils.logging import get_logger
from .credentials import SSHCredentials

logger = get_logger(__name__)

_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


class SSHConnectionError(RuntimeError):
    """Raised when an SSH connection cannot be established."""

    pass


class SSHTransferError(RuntimeError):
    """Raised when a file cannot be uploaded over SFTP."""

    pass


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_status == 0 and not self.timed_out


def load_private_key(key_text: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse an in-memory private key, trying each supported key type."""
    errors = []
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key_text), password=passphrase)
        except (paramiko.SSHException, ValueError) as exc:
            errors.append(f"{key_class.__name__}: {exc}")
    raise SSHConnectionError("Unsupported or invalid private key (" + "; ".join(errors) + ")")


class SSHSession:
    """High-level wrapper around paramiko.SSHClient."""

    def __init__(
        self,
        credentials: SSHCredentials,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
        poll_interval: float = 0.1,
    ) -> None:
        self.credentials = credentials
        self.poll_interval = poll_interval
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def username(self) -> str:
        return self.credentials.username

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            connect_kwargs = {
                "hostname": self.credentials.host,
                "port": self.credentials.port,
                "username": self.credentials.username,
                "timeout": self.credentials.timeout,
                "look_for_keys": False,
                "allow_agent": False,
            }
            if self.credentials.password:
                connect_kwargs["password"] = self.credentials.password
            elif self.credentials.private_key:
                connect_kwargs["pkey"] = load_private_key(
                    self.credentials.private_key, self.credentials.passphrase
                )
            else:
                connect_kwargs["key_filename"] = self.credentials.key_path
                if self.credentials.passphrase:
                    connect_kwargs["passphrase"] = self.credentials.passphrase
            client.connect(**connect_kwargs)
        except Exception as exc:  # pragma: no cover - network errors hard to simulate
            client.close()
            if isinstance(exc, SSHConnectionError):
                raise
            raise SSHConnectionError(str(exc)) from exc
        self._client = client
        logger.info(
            "Connected to %s:%s as %s",
            self.credentials.host,
            self.credentials.port,
            self.credentials.username,
        )

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(
        self,
        command: str,
        *,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        stream_output: bool = False,
    ) -> SSHCommandResult:
        """
        Execute a command on the remote server.

        Args:
            command: The command to execute
            cwd: Remote working directory, applied to this command only
            timeout: Wall-clock limit in seconds; ``None`` waits indefinitely
            stream_output: Echo remote output locally while it arrives

        Returns:
            SSHCommandResult with command output and exit status

        Note:
            On timeout the channel is closed and ``timed_out`` is set. Whether
            the remote process is terminated depends on the SSH server.
        """
        if not self._client:
            self.connect()
        assert self._client is not None

        actual_command = command
        if cwd:
            actual_command = f"cd {shlex.quote(cwd)} && {command}"
        logger.debug("exec: %s", actual_command)

        try:
            _, stdout, _ = self._client.exec_command(actual_command)
        except (OSError, paramiko.SSHException) as exc:
            raise SSHConnectionError(f"SSH session lost while running command: {exc}") from exc
        channel = stdout.channel

        out = _StreamCapture(sys.stdout if stream_output else None)
        err = _StreamCapture(sys.stderr if stream_output else None)
        start_time = time.monotonic()

        try:
            while not channel.exit_status_ready():
                self._drain(channel, out, err)
                if timeout is not None and time.monotonic() - start_time > timeout:
                    channel.close()
                    return SSHCommandResult(
                        command=command,
                        stdout=out.text(),
                        stderr=err.text(),
                        exit_status=-1,
                        timed_out=True,
                    )
                time.sleep(self.poll_interval)

            self._drain(channel, out, err)
            exit_status = channel.recv_exit_status()
        except (OSError, EOFError, paramiko.SSHException) as exc:
            raise SSHConnectionError(f"SSH session lost while running command: {exc}") from exc

        return SSHCommandResult(
            command=command,
            stdout=out.text(),
            stderr=err.text(),
            exit_status=exit_status,
        )

    def put_file(self, local_path: str, remote_path: str) -> None:
        if not self._client:
            self.connect()
        assert self._client is not None
        try:
            sftp = self._client.open_sftp()
            try:
                sftp.put(local_path, remote_path)
            finally:
                sftp.close()
        except (OSError, paramiko.SSHException) as exc:
            raise SSHTransferError(
                f"Failed to upload {local_path} to {remote_path}: {exc}"
            ) from exc

    @staticmethod
    def _drain(channel, out: "_StreamCapture", err: "_StreamCapture") -> None:
        while channel.recv_ready():
            out.feed(channel.recv(1024))
        while channel.recv_stderr_ready():
            err.feed(channel.recv_stderr(1024))


class _StreamCapture:
    """Accumulates one channel stream, decoding UTF-8 across chunk boundaries."""

    def __init__(self, echo=None) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._chunks: List[str] = []
        self._echo = echo

    def feed(self, data: bytes) -> None:
        self._write(self._decoder.decode(data))

    def text(self) -> str:
        self._write(self._decoder.decode(b"", final=True))
        return "".join(self._chunks).strip()

    def _write(self, chunk: str) -> None:
        if not chunk:
            return
        self._chunks.append(chunk)
        if self._echo is not None:
            self._echo.write(chunk)
            self._echo.flush()
