import unittest

from fakes import FakeSession

from spec_deployer.context import DeploymentContext
from spec_deployer.errors import HookFailure
from spec_deployer.lifecycle import HookRunner, build_hook_command, resolve_hook_path
from spec_deployer.spec import Hook
from spec_deployer.ssh import SSHCredentials


def _context() -> DeploymentContext:
    return DeploymentContext(
        credentials=SSHCredentials(host="example.com", username="ubuntu", password="pw"),
        target_path="/opt/app",
    )


class BuildHookCommandTests(unittest.TestCase):
    def test_same_identity_runs_directly(self) -> None:
        command = build_hook_command("/opt/app/scripts/start.sh", "ubuntu", "ubuntu")
        self.assertEqual(command, "bash /opt/app/scripts/start.sh")
        self.assertNotIn("sudo", command)

    def test_missing_runas_runs_directly(self) -> None:
        self.assertEqual(
            build_hook_command("/opt/app/start.sh", None, "ubuntu"),
            "bash /opt/app/start.sh",
        )

    def test_other_identity_switches_privilege(self) -> None:
        command = build_hook_command("/opt/app/scripts/start.sh", "www-data", "ubuntu")
        self.assertEqual(command, "sudo -n -u www-data bash /opt/app/scripts/start.sh")

    def test_paths_are_quoted(self) -> None:
        command = build_hook_command("/opt/my app/start.sh", None, "ubuntu")
        self.assertEqual(command, "bash '/opt/my app/start.sh'")

    def test_resolve_hook_path_joins_target(self) -> None:
        self.assertEqual(resolve_hook_path("/opt/app", "scripts/stop.sh"), "/opt/app/scripts/stop.sh")
        self.assertEqual(resolve_hook_path("/opt/app/", "./stop.sh"), "/opt/app/stop.sh")


class HookRunnerTests(unittest.TestCase):
    def test_success_returns_captured_output(self) -> None:
        session = FakeSession().respond("start.sh", stdout="started")
        runner = HookRunner(session)  # type: ignore[arg-type]

        with self.assertLogs("spec_deployer.lifecycle.hooks", level="INFO") as logs:
            result = runner.execute(Hook(location="scripts/start.sh", timeout=30), _context())

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.stdout, "started")
        self.assertTrue(any("Output: started" in line for line in logs.output))
        command, cwd, timeout = session.calls[0]
        self.assertEqual(command, "bash /opt/app/scripts/start.sh")
        self.assertEqual(cwd, "/opt/app")
        self.assertEqual(timeout, 30)

    def test_runas_other_user_uses_sudo(self) -> None:
        session = FakeSession()
        HookRunner(session).execute(  # type: ignore[arg-type]
            Hook(location="migrate.sh", runas="deploy"), _context()
        )
        self.assertTrue(session.commands[0].startswith("sudo -n -u deploy "))

    def test_runas_connecting_user_skips_sudo(self) -> None:
        session = FakeSession()
        HookRunner(session).execute(  # type: ignore[arg-type]
            Hook(location="migrate.sh", runas="ubuntu"), _context()
        )
        self.assertEqual(session.commands[0], "bash /opt/app/migrate.sh")

    def test_non_zero_exit_raises_hook_failure(self) -> None:
        session = FakeSession().respond(
            "stop.sh", exit_status=3, stdout="stopping", stderr="no such service"
        )
        with self.assertRaises(HookFailure) as ctx:
            HookRunner(session).execute(Hook(location="scripts/stop.sh"), _context())  # type: ignore[arg-type]

        failure = ctx.exception
        self.assertEqual(failure.location, "scripts/stop.sh")
        self.assertEqual(failure.exit_code, 3)
        self.assertFalse(failure.timed_out)
        self.assertEqual(failure.stderr, "no such service")
        self.assertEqual(failure.stdout, "stopping")
        message = str(failure)
        self.assertLess(message.index("no such service"), message.index("stopping"))

    def test_timeout_is_classified_separately(self) -> None:
        session = FakeSession().respond("slow.sh", timed_out=True)
        with self.assertRaises(HookFailure) as ctx:
            HookRunner(session).execute(Hook(location="slow.sh", timeout=5), _context())  # type: ignore[arg-type]

        self.assertTrue(ctx.exception.timed_out)
        self.assertEqual(ctx.exception.timeout, 5)
        self.assertIn("timed out after 5s", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
