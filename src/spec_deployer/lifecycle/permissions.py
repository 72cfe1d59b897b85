"""Applying deployspec permission rules to the extracted tree."""

from __future__ import annotations

import posixpath
import shlex
from typing import List, Sequence

from ..context import DeploymentContext
from ..errors import PermissionApplyError
from ..spec import PermissionRule
from ..ssh import SSHSession
from ..utils.logging import get_logger

logger = get_logger(__name__)


def build_permission_commands(rule: PermissionRule, target_path: str) -> List[str]:
    """Return the find/chmod and find/chown commands for ``rule``, in that order."""
    directory = posixpath.normpath(posixpath.join(target_path, rule.object))
    match = f"find {shlex.quote(directory)} -type f -name {shlex.quote(rule.pattern)}"
    commands = []
    if rule.mode is not None:
        commands.append(f"{match} -exec chmod {shlex.quote(rule.mode)} {{}} +")
    if rule.changes_ownership:
        owner = shlex.quote(f"{rule.owner}:{rule.group}")
        commands.append(f"{match} -exec chown {owner} {{}} +")
    return commands


class PermissionApplier:
    """Issues one remote command per mode/ownership change, in document order."""

    def __init__(self, session: SSHSession) -> None:
        self.session = session

    def apply(self, rules: Sequence[PermissionRule], context: DeploymentContext) -> int:
        if not rules:
            logger.info("No permissions to set")
            return 0

        logger.info("Setting file permissions...")
        issued = 0
        for rule in rules:
            ignored = [kind for kind in rule.type if kind != "file"]
            if ignored:
                logger.warning(
                    "Permission rule %s: entry types %s are not supported and are ignored",
                    rule.object,
                    ", ".join(ignored),
                )
            if not rule.applies_to_files:
                continue
            if rule.owner and not rule.group or rule.group and not rule.owner:
                logger.warning(
                    "Permission rule %s sets only one of owner/group; ownership left unchanged",
                    rule.object,
                )
            for command in build_permission_commands(rule, context.target_path):
                result = self.session.run(command)
                if result.exit_status != 0:
                    raise PermissionApplyError(
                        command,
                        exit_code=result.exit_status,
                        stderr=result.stderr,
                        stdout=result.stdout,
                    )
                issued += 1

        logger.info("✓ Permissions set successfully")
        return issued
