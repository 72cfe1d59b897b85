"""Configuration loading utilities for spec-deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .lifecycle.transfer import DEFAULT_EXCLUDES

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")

ENV_PREFIX = "SPEC_DEPLOYER_"


@dataclass
class DeploymentConfig:
    """Defaults for run parameters not given on the command line."""

    default_host: Optional[str] = None
    default_port: int = 22
    default_user: Optional[str] = None
    default_password: Optional[str] = None
    default_key: Optional[str] = None
    default_key_path: Optional[str] = None
    default_target_path: Optional[str] = None
    deployspec_path: str = "deployspec.yml"
    source_path: str = "."
    connect_timeout: int = 20


@dataclass
class TransferConfig:
    """Settings for packaging and shipping the source tree."""

    excludes: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    remote_tmp_dir: str = "/tmp"
    local_tmp_dir: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level configuration."""

    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        deployment_payload = payload.get("deployment", {}) or {}
        transfer_payload = payload.get("transfer", {}) or {}

        # Keys starting with "_" are comments in the JSON file.
        deployment_payload = {k: v for k, v in deployment_payload.items() if not k.startswith("_")}
        transfer_payload = {k: v for k, v in transfer_payload.items() if not k.startswith("_")}

        return cls(
            deployment=DeploymentConfig(
                **{**DeploymentConfig().__dict__, **deployment_payload}
            ),
            transfer=TransferConfig(
                **{**TransferConfig().__dict__, **transfer_payload}
            ),
        )


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    deployment = config.deployment

    env_host = os.getenv(f"{ENV_PREFIX}SSH_HOST")
    if env_host:
        deployment.default_host = env_host

    env_port = os.getenv(f"{ENV_PREFIX}SSH_PORT")
    if env_port:
        try:
            deployment.default_port = int(env_port)
        except ValueError as exc:
            raise ConfigurationError(
                f"{ENV_PREFIX}SSH_PORT must be an integer, got: {env_port!r}"
            ) from exc

    env_user = os.getenv(f"{ENV_PREFIX}SSH_USER")
    if env_user:
        deployment.default_user = env_user

    env_password = os.getenv(f"{ENV_PREFIX}SSH_PASSWORD")
    if env_password:
        deployment.default_password = env_password

    env_key = os.getenv(f"{ENV_PREFIX}SSH_KEY")
    if env_key:
        deployment.default_key = env_key

    env_key_path = os.getenv(f"{ENV_PREFIX}SSH_KEY_PATH")
    if env_key_path:
        deployment.default_key_path = env_key_path

    env_target = os.getenv(f"{ENV_PREFIX}TARGET_PATH")
    if env_target:
        deployment.default_target_path = env_target

    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    An explicit `path` must exist. Without one, `config/default_config.json`
    is used when present and built-in defaults otherwise.

    Environment variables (higher priority than config file):
    - SPEC_DEPLOYER_SSH_HOST: Default SSH host
    - SPEC_DEPLOYER_SSH_PORT: Default SSH port
    - SPEC_DEPLOYER_SSH_USER: Default SSH username
    - SPEC_DEPLOYER_SSH_PASSWORD: Default SSH password
    - SPEC_DEPLOYER_SSH_KEY: Private key text
    - SPEC_DEPLOYER_SSH_KEY_PATH: Path to SSH private key
    - SPEC_DEPLOYER_TARGET_PATH: Default remote target directory
    """
    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise FileNotFoundError(f"Could not find configuration file: {candidate}")
    else:
        candidate = _DEFAULT_CONFIG_PATH

    if candidate.is_file():
        with candidate.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        config = AppConfig.from_dict(data)
    else:
        config = AppConfig()

    return _apply_env_overrides(config)
