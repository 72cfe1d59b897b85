"""Packaging the source tree and shipping it to the target directory."""

from __future__ import annotations

import fnmatch
import posixpath
import shlex
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

from ..context import DeploymentContext
from ..errors import TransferError
from ..ssh import SSHConnectionError, SSHSession, SSHTransferError
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_EXCLUDES = (".git", "node_modules", ".env", "*.log")


@contextmanager
def _scoped_local_file(path: Path) -> Iterator[Path]:
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def is_excluded(relative_name: str, patterns: Sequence[str]) -> bool:
    parts = [part for part in relative_name.split("/") if part not in ("", ".")]
    return any(fnmatch.fnmatch(part, pattern) for part in parts for pattern in patterns)


def create_archive(source_dir: Path, output: Path, excludes: Sequence[str] = DEFAULT_EXCLUDES) -> Path:
    """Write a gzip'd tarball of the contents of ``source_dir`` to ``output``."""

    def exclude_filter(tarinfo: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
        if is_excluded(tarinfo.name, excludes):
            return None
        return tarinfo

    with tarfile.open(output, "w:gz") as tar:
        for item in sorted(source_dir.iterdir()):
            tar.add(item, arcname=item.name, filter=exclude_filter)
    return output


class FileTransfer:
    """Moves ``context.source_path`` into ``context.target_path`` on the remote host.

    Every run is a full overwrite of matching paths; nothing is diffed.
    The local archive is always removed, and the remote archive is removed
    whenever an upload was attempted.
    """

    def __init__(
        self,
        session: SSHSession,
        *,
        excludes: Sequence[str] = DEFAULT_EXCLUDES,
        remote_tmp_dir: str = "/tmp",
        local_tmp_dir: Optional[str] = None,
    ) -> None:
        self.session = session
        self.excludes = tuple(excludes)
        self.remote_tmp_dir = remote_tmp_dir
        self.local_tmp_dir = Path(local_tmp_dir or tempfile.gettempdir())

    def transfer(self, context: DeploymentContext) -> None:
        source_dir = Path(context.source_path)
        if not source_dir.is_dir():
            raise TransferError(f"Source path {source_dir} is not a directory")

        archive_name = f"deploy-{context.run_id}.tar.gz"
        remote_archive = posixpath.join(self.remote_tmp_dir, archive_name)

        with _scoped_local_file(self.local_tmp_dir / archive_name) as local_archive:
            self._package(source_dir, local_archive)
            try:
                self._upload(local_archive, remote_archive, context)
                self._extract(remote_archive, context.target_path)
            finally:
                self._remove_remote(remote_archive)
        logger.info("✓ Deployment files transferred")

    def _package(self, source_dir: Path, local_archive: Path) -> None:
        logger.info("Creating archive from %s...", source_dir)
        try:
            create_archive(source_dir, local_archive, self.excludes)
        except (OSError, tarfile.TarError) as exc:
            raise TransferError(f"Failed to create archive from {source_dir}: {exc}") from exc
        size_mb = local_archive.stat().st_size / (1024 * 1024)
        logger.info("✓ Archive created: %.2f MB", size_mb)

    def _upload(self, local_archive: Path, remote_archive: str, context: DeploymentContext) -> None:
        logger.info("Uploading archive to %s...", context.host)
        try:
            self.session.put_file(str(local_archive), remote_archive)
        except SSHTransferError as exc:
            raise TransferError(str(exc)) from exc
        logger.info("✓ Archive uploaded")

    def _extract(self, remote_archive: str, target_path: str) -> None:
        logger.info("Extracting archive to %s...", target_path)
        quoted_target = shlex.quote(target_path)
        mkdir = self.session.run(f"mkdir -p {quoted_target}")
        if mkdir.exit_status != 0:
            raise TransferError(
                f"Failed to create target directory {target_path}: {mkdir.stderr}"
            )
        extract = self.session.run(f"tar -xzf {shlex.quote(remote_archive)} -C {quoted_target}")
        if extract.exit_status != 0:
            raise TransferError(f"Failed to extract archive: {extract.stderr}")
        logger.info("✓ Archive extracted successfully")

    def _remove_remote(self, remote_archive: str) -> None:
        try:
            result = self.session.run(f"rm -f {shlex.quote(remote_archive)}")
        except SSHConnectionError as exc:
            logger.warning("Could not remove remote archive %s: %s", remote_archive, exc)
            return
        if result.exit_status != 0:
            logger.warning("Could not remove remote archive %s: %s", remote_archive, result.stderr)
