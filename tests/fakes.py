"""Test doubles for the transport session."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from spec_deployer.ssh import SSHCommandResult, SSHConnectionError, SSHTransferError


class FakeSession:
    """Records every remote call and answers with canned results.

    Commands match a canned response when the registered needle is a
    substring of the command; unmatched commands succeed with no output.
    """

    def __init__(
        self,
        credentials=None,
        *,
        fail_connect: bool = False,
        fail_upload: bool = False,
    ) -> None:
        self.credentials = credentials
        self.fail_connect = fail_connect
        self.fail_upload = fail_upload
        self.connect_calls = 0
        self.closed = False
        self.calls: List[Tuple[str, Optional[str], Optional[float]]] = []
        self.uploads: List[Tuple[str, str, bool]] = []
        self._responses: List[Tuple[str, int, str, str, bool, bool]] = []

    def respond(
        self,
        needle: str,
        *,
        exit_status: int = 0,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
        disconnect: bool = False,
    ) -> "FakeSession":
        self._responses.append((needle, exit_status, stdout, stderr, timed_out, disconnect))
        return self

    @property
    def commands(self) -> List[str]:
        return [command for command, _, _ in self.calls]

    def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            raise SSHConnectionError("connection refused")

    def close(self) -> None:
        self.closed = True

    def run(self, command, *, cwd=None, timeout=None, stream_output=False):
        self.calls.append((command, cwd, timeout))
        for needle, exit_status, stdout, stderr, timed_out, disconnect in self._responses:
            if needle in command:
                if disconnect:
                    raise SSHConnectionError("SSH session lost while running command: socket closed")
                return SSHCommandResult(
                    command=command,
                    stdout=stdout,
                    stderr=stderr,
                    exit_status=-1 if timed_out else exit_status,
                    timed_out=timed_out,
                )
        return SSHCommandResult(command=command, stdout="", stderr="", exit_status=0)

    def put_file(self, local_path: str, remote_path: str) -> None:
        self.uploads.append((local_path, remote_path, Path(local_path).exists()))
        if self.fail_upload:
            raise SSHTransferError(f"Failed to upload {local_path} to {remote_path}: broken pipe")
