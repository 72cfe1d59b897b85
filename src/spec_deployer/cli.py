"""Command-line interface for spec-deployer."""

from __future__ import annotations

import argparse
from typing import Optional

from .config import AppConfig, load_config
from .context import DeploymentContext
from .errors import ConfigurationError, SpecLoadError
from .spec import LifecycleStage, load_deployspec
from .ssh import SSHCredentials
from .utils.logging import get_logger, set_verbose
from .workflow import DeploymentWorkflow

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spec-deployer",
        description="Deploy a directory to a remote server over SSH, driven by a deployspec.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log issued remote commands."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy_parser = subparsers.add_parser(
        "deploy", help="Run the deployment lifecycle against a remote host"
    )
    deploy_parser.add_argument("--host", help="Target server host")
    deploy_parser.add_argument("--port", type=int, default=None, help="SSH port (default: 22)")
    deploy_parser.add_argument("--user", help="SSH username")
    deploy_parser.add_argument("--password", help="SSH password", default=None)
    deploy_parser.add_argument("--key", help="SSH private key contents", default=None)
    deploy_parser.add_argument(
        "--key-path", help="Path to SSH private key", default=None
    )
    deploy_parser.add_argument(
        "--deployspec", dest="deployspec_path", default=None,
        help="Path to the deployspec file (default: deployspec.yml)",
    )
    deploy_parser.add_argument(
        "--source", dest="source_path", default=None,
        help="Local directory to deploy (default: .)",
    )
    deploy_parser.add_argument(
        "--target", dest="target_path", default=None,
        help="Remote target directory",
    )
    deploy_parser.add_argument(
        "--stream", action="store_true",
        help="Echo hook output while it runs",
    )

    check_parser = subparsers.add_parser(
        "check", help="Validate a deployspec without connecting anywhere"
    )
    check_parser.add_argument(
        "deployspec_path", nargs="?", default=None,
        help="Path to the deployspec file (default: deployspec.yml)",
    )

    return parser


def _pick(cli_value, default):
    return cli_value if cli_value is not None else default


def build_context(args: argparse.Namespace, config: AppConfig) -> DeploymentContext:
    deployment = config.deployment
    credentials = SSHCredentials(
        host=_pick(args.host, deployment.default_host) or "",
        username=_pick(args.user, deployment.default_user) or "",
        port=_pick(args.port, deployment.default_port),
        password=_pick(args.password, deployment.default_password),
        private_key=_pick(args.key, deployment.default_key),
        key_path=_pick(args.key_path, deployment.default_key_path),
        timeout=deployment.connect_timeout,
    )
    return DeploymentContext(
        credentials=credentials,
        target_path=_pick(args.target_path, deployment.default_target_path) or "",
        source_path=_pick(args.source_path, deployment.source_path),
        deployspec_path=_pick(args.deployspec_path, deployment.deployspec_path),
        stream_output=args.stream,
    )


def handle_check_command(args: argparse.Namespace, config: AppConfig) -> int:
    path = _pick(args.deployspec_path, config.deployment.deployspec_path)
    try:
        spec = load_deployspec(path)
    except SpecLoadError as exc:
        print(f"❌ {exc}")
        return 1
    if spec is None:
        print(f"ℹ️  No deployspec at {path}; a deployment would only transfer files")
        return 0

    print(f"✅ {path} (version {spec.version})")
    for stage in LifecycleStage:
        hooks = spec.hooks_for(stage)
        print(f"  {stage.value}: {len(hooks)} hook(s)")
        for hook in hooks:
            runas = f", runas {hook.runas}" if hook.runas else ""
            print(f"    - {hook.location} (timeout {hook.timeout}s{runas})")
    print(f"  permissions: {len(spec.permissions)} rule(s)")
    for rule in spec.permissions:
        changes = []
        if rule.mode is not None:
            changes.append(f"mode {rule.mode}")
        if rule.changes_ownership:
            changes.append(f"owner {rule.owner}:{rule.group}")
        print(f"    - {rule.object}/{rule.pattern}: {', '.join(changes) or 'no-op'}")
    return 0


def handle_deploy_command(args: argparse.Namespace, config: AppConfig) -> int:
    context = build_context(args, config)
    workflow = DeploymentWorkflow(config)
    result = workflow.run_deploy(context)
    if result.success:
        return 0
    stage = result.failed_stage.value if result.failed_stage else "startup"
    print(f"❌ Deployment failed at {stage}: {result.error}")
    return 1


def dispatch_command(args: argparse.Namespace) -> int:
    set_verbose(args.verbose)
    try:
        config = load_config(args.config)
    except ConfigurationError as exc:
        print(f"❌ Invalid configuration: {exc}")
        return 1

    if args.command == "check":
        return handle_check_command(args, config)
    if args.command == "deploy":
        return handle_deploy_command(args, config)

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return dispatch_command(args)
