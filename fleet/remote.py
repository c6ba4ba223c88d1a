"""
Remote Command Runner - docker compose start/stop on a node over SSH.

One call runs one lifecycle action against one node and either returns the
captured output or raises RemoteCommandError. Nothing is retried and no
timeout is applied; the call blocks until ssh returns.

Usage:
    runner = RemoteCommandRunner(ssh_user="user01")
    runner.run(Node("10.0.0.5"), Workload.PROVER_1, ComposeAction.START)
"""

import logging
import subprocess
from typing import List, Optional

from fleet.config import DEFAULT_SSH_USER, FleetError
from fleet.types import ComposeAction, Node, Workload

logger = logging.getLogger("fleet.remote")


class RemoteCommandError(FleetError):
    """A compose command failed on a node, or ssh itself could not run."""

    def __init__(
        self,
        address: str,
        action: ComposeAction,
        workload: Workload,
        cause: str,
        output: str = "",
    ):
        self.address = address
        self.action = action
        self.workload = workload
        self.cause = cause
        self.output = output
        message = f"[{address}] docker compose {action.value} failed: {cause}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class RemoteCommandRunner:
    """Runs compose lifecycle commands on fleet nodes."""

    def __init__(self, ssh_user: str = DEFAULT_SSH_USER):
        self.ssh_user = ssh_user

    @staticmethod
    def remote_command(workload: Workload, action: ComposeAction) -> str:
        return f"cd {workload.folder} && docker compose {action.value}"

    def build_command(
        self,
        node: Node,
        workload: Workload,
        action: ComposeAction,
    ) -> List[str]:
        """argv for the ssh invocation. Uses sshpass when the node has a password."""
        target = f"{self.ssh_user}@{node.address}"
        remote = self.remote_command(workload, action)

        if node.uses_password:
            return [
                "sshpass", "-p", node.password,
                "ssh", "-o", "StrictHostKeyChecking=no",
                target,
                remote,
            ]
        return ["ssh", target, remote]

    def run(self, node: Node, workload: Workload, action: ComposeAction) -> str:
        """
        Run one compose action on one node.

        Returns:
            Combined stdout/stderr of the remote command (undecodable bytes
            replaced)

        Raises:
            RemoteCommandError: Non-zero exit or the transport could not start
        """
        cmd = self.build_command(node, workload, action)

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise RemoteCommandError(node.address, action, workload, str(e))

        output = result.stdout or ""
        if result.returncode != 0:
            raise RemoteCommandError(
                node.address,
                action,
                workload,
                f"exit status {result.returncode}",
                output.strip(),
            )

        logger.info(f"[{node.address}] docker compose {action.value} ({workload.folder})")
        return output


def describe_failure(error: RemoteCommandError) -> Optional[str]:
    """Last line of captured output, for compact log summaries."""
    lines = [line for line in error.output.splitlines() if line.strip()]
    return lines[-1] if lines else None
