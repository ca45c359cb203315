from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

AWS_REGION = "AWS_REGION"
AWS_DEFAULT_REGION = "AWS_DEFAULT_REGION"
AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
AWS_SESSION_TOKEN = "AWS_SESSION_TOKEN"
AWS_PROFILE = "AWS_PROFILE"
AWS_CONFIG_FILE = "AWS_CONFIG_FILE"
AWS_CONTAINER_CREDENTIALS_RELATIVE_URI = "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI"
AWS_WEB_IDENTITY_TOKEN_FILE = "AWS_WEB_IDENTITY_TOKEN_FILE"
AWS_ROLE_ARN = "AWS_ROLE_ARN"
AWS_EXECUTION_ENV = "AWS_EXECUTION_ENV"
ECS_CONTAINER_METADATA_URI = "ECS_CONTAINER_METADATA_URI"
ECS_CONTAINER_METADATA_URI_V4 = "ECS_CONTAINER_METADATA_URI_V4"
KUBERNETES_SERVICE_HOST = "KUBERNETES_SERVICE_HOST"
AWS_BEDROCK_CONFIG = "AWS_BEDROCK_CONFIG"

REGION_ENV_NAMES = (AWS_REGION, AWS_DEFAULT_REGION)

BEDROCK_CREDS_IMDS_TIMEOUT = "BEDROCK_CREDS_IMDS_TIMEOUT"
BEDROCK_CREDS_CLI_TIMEOUT = "BEDROCK_CREDS_CLI_TIMEOUT"
BEDROCK_CREDS_STS_CONNECT_TIMEOUT = "BEDROCK_CREDS_STS_CONNECT_TIMEOUT"
BEDROCK_CREDS_STS_READ_TIMEOUT = "BEDROCK_CREDS_STS_READ_TIMEOUT"
BEDROCK_CREDS_SSO_LOGIN_TIMEOUT = "BEDROCK_CREDS_SSO_LOGIN_TIMEOUT"

DOCKERENV_PATH = Path("/.dockerenv")
CGROUP_PATH = Path("/proc/1/cgroup")
EKS_TOKEN_PATH = Path("/var/run/secrets/kubernetes.io/serviceaccount/token")
IMDS_CREDENTIALS_URL = "http://169.254.169.254/latest/meta-data/iam/security-credentials/"

EnvLookup = Callable[..., "str | None"]


def env_lookup(env: Mapping[str, str] | None = None) -> EnvLookup:
    """Return an `env_or_none(*names)` lookup over `env` (defaults to os.environ)."""

    source = os.environ if env is None else env

    def _env_or_none(*names: str) -> str | None:
        for n in names:
            v = (source.get(n) or "").strip()
            if v:
                return v
        return None

    return _env_or_none


def _float_env(env_or_none: EnvLookup, name: str, default: float) -> float:
    raw = env_or_none(name)
    if raw is None:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else default


def default_aws_config_path(env_or_none: EnvLookup | None = None) -> Path:
    lookup = env_or_none or env_lookup()
    override = lookup(AWS_CONFIG_FILE)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".aws" / "config"


@dataclass(frozen=True)
class Settings:
    imds_timeout_seconds: float = 1.0
    cli_timeout_seconds: float = 5.0
    sts_connect_timeout_seconds: float = 3.0
    sts_read_timeout_seconds: float = 10.0
    sso_login_timeout_seconds: float = 300.0
    aws_config_path: Path | None = None

    @classmethod
    def from_env(cls, env_or_none: EnvLookup | None = None) -> "Settings":
        lookup = env_or_none or env_lookup()
        return cls(
            imds_timeout_seconds=_float_env(lookup, BEDROCK_CREDS_IMDS_TIMEOUT, 1.0),
            cli_timeout_seconds=_float_env(lookup, BEDROCK_CREDS_CLI_TIMEOUT, 5.0),
            sts_connect_timeout_seconds=_float_env(lookup, BEDROCK_CREDS_STS_CONNECT_TIMEOUT, 3.0),
            sts_read_timeout_seconds=_float_env(lookup, BEDROCK_CREDS_STS_READ_TIMEOUT, 10.0),
            sso_login_timeout_seconds=_float_env(lookup, BEDROCK_CREDS_SSO_LOGIN_TIMEOUT, 300.0),
            aws_config_path=default_aws_config_path(lookup),
        )
