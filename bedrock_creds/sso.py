"""Developer-machine SSO helpers that shell out to the AWS CLI.

The SSO device flow itself is owned by ``aws sso login``; these helpers only
gate and invoke it, and read SSO settings back out of ``~/.aws/config``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import botocore.configloader
from botocore.exceptions import BotoCoreError

from .config_parser import SsoConfig
from .environment import EnvironmentInfo
from .errors import SsoLoginFailedError, SsoLoginUnavailableError
from .settings import default_aws_config_path

logger = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]

_SESSION_KEYS = ("sso_start_url", "sso_region")


def _profile_args(profile: str | None) -> list[str]:
    p = (profile or "").strip()
    return ["--profile", p] if p else []


def sso_login(
    env: EnvironmentInfo,
    *,
    profile: str | None = None,
    run: Runner = subprocess.run,
    timeout_seconds: float = 300.0,
) -> str:
    if env.is_container:
        raise SsoLoginUnavailableError(
            "SSO login is not supported in container environments; use IAM roles for production"
        )
    if not env.has_aws_cli:
        raise SsoLoginUnavailableError(
            "AWS CLI is not available; install the AWS CLI for SSO login on developer machines"
        )

    argv: Sequence[str] = ["aws", "sso", "login", *_profile_args(profile)]
    logger.info("executing: %s", " ".join(argv))
    try:
        proc = run(list(argv), capture_output=True, text=True, timeout=timeout_seconds, check=False)
    except subprocess.TimeoutExpired as e:
        raise SsoLoginFailedError(f"AWS SSO login timed out after {e.timeout}s") from e
    except (OSError, subprocess.SubprocessError) as e:
        raise SsoLoginFailedError(f"AWS SSO login failed: {e}") from e
    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        raise SsoLoginFailedError(f"AWS SSO login failed (exit {proc.returncode}): {stderr}")
    return (proc.stdout or "").strip()


def is_sso_session_active(
    *,
    profile: str | None = None,
    run: Runner = subprocess.run,
    timeout_seconds: float = 30.0,
) -> bool:
    argv = ["aws", "sts", "get-caller-identity", *_profile_args(profile)]
    try:
        proc = run(argv, capture_output=True, text=True, timeout=timeout_seconds, check=False)
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("SSO session check failed: %s", e)
        return False
    if proc.returncode != 0:
        logger.info("SSO session not active: %s", (proc.stderr or "").strip())
        return False
    return True


def _str_value(section: Mapping[str, Any], key: str) -> str | None:
    val = section.get(key)
    if not isinstance(val, str):
        return None
    return val.strip() or None


def read_profile_sso_config(
    profile: str = "default",
    *,
    config_path: Path | None = None,
) -> SsoConfig | None:
    """Read a profile's SSO settings, following `sso_session` into its `[sso-session]` section."""
    path = config_path or default_aws_config_path()
    try:
        full_config = botocore.configloader.load_config(str(path))
    except BotoCoreError as e:
        logger.debug("cannot read AWS config %s: %s", path, e)
        return None

    section = full_config.get("profiles", {}).get(profile)
    if not section:
        return None
    values = {
        key: _str_value(section, key)
        for key in (*_SESSION_KEYS, "sso_account_id", "sso_role_name", "region")
    }

    session_name = _str_value(section, "sso_session")
    if session_name:
        session = full_config.get("sso_sessions", {}).get(session_name) or {}
        for key in _SESSION_KEYS:
            values[key] = values[key] or _str_value(session, key)

    start_url, sso_region, region = values["sso_start_url"], values["sso_region"], values["region"]
    if not (start_url and sso_region and region):
        return None
    return SsoConfig(
        region=region,
        profile=profile,
        sso_start_url=start_url,
        sso_region=sso_region,
        sso_account_id=values["sso_account_id"],
        sso_role_name=values["sso_role_name"],
    )
