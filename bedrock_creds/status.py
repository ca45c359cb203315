from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .config_parser import CredentialConfig, StaticConfig, parse_config
from .credentials import CallerIdentity
from .environment import EnvironmentInfo
from .resolver import CredentialResolver, Strategy, select_strategy
from .settings import EnvLookup, default_aws_config_path

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_HEADER = "[default]"
NAMED_PROFILE_PREFIX = "[profile "


class CredentialMethod(str, enum.Enum):
    ORCHESTRATOR_ROLE = "orchestrator-role"
    ATTACHED_ROLE = "attached-role"
    SSO = "sso"
    STATIC = "static"
    DEFAULT_CHAIN = "default-chain"
    NONE = "none"


@dataclass(frozen=True)
class CredentialStatus:
    available: bool
    method: CredentialMethod
    detail: str = ""
    identity: CallerIdentity | None = None
    error: str | None = None
    environment: EnvironmentInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"available": self.available, "method": self.method.value}
        if self.detail:
            out["detail"] = self.detail
        if self.identity is not None:
            out["identity"] = self.identity.to_dict()
        if self.error is not None:
            out["error"] = self.error
        out["environment"] = None if self.environment is None else self.environment.to_dict()
        return out


def classify_method(
    config: CredentialConfig,
    env: EnvironmentInfo,
    strategy: Strategy | None = None,
) -> tuple[CredentialMethod, str]:
    """Label the resolver branch that produced the credential."""
    if strategy is None:
        strategy = select_strategy(config, env)
    if strategy is Strategy.PLATFORM_ROLE:
        if env.is_ecs:
            return CredentialMethod.ORCHESTRATOR_ROLE, "ECS Task Role"
        if env.is_eks:
            return CredentialMethod.ORCHESTRATOR_ROLE, "EKS Service Account"
        return CredentialMethod.ATTACHED_ROLE, "EC2 Instance Profile"
    if strategy is Strategy.LOCAL_SSO:
        return CredentialMethod.SSO, "AWS SSO"
    if isinstance(config, StaticConfig):
        return CredentialMethod.STATIC, "Static Credentials"
    return CredentialMethod.DEFAULT_CHAIN, "Default Credential Chain"


def parse_profile_names(lines: Iterable[str]) -> list[str]:
    """Extract profile names from ``~/.aws/config`` style section headers.

    Unknown lines and malformed headers are skipped.
    """
    out: list[str] = []
    seen: set[str] = set()
    for line in lines:
        s = line.strip()
        if s == DEFAULT_PROFILE_HEADER:
            name = "default"
        elif s.startswith(NAMED_PROFILE_PREFIX) and s.endswith("]"):
            name = s[len(NAMED_PROFILE_PREFIX) : -1].strip()
        else:
            continue
        if not name or name in seen:
            continue
        seen.add(name)
        out.append(name)
    return out


class StatusReporter:
    """Read-only diagnostics over a :class:`CredentialResolver`. Never raises."""

    def __init__(self, resolver: CredentialResolver, *, aws_config_path: Path | None = None) -> None:
        self.resolver = resolver
        self.aws_config_path = aws_config_path

    def _environment_or_none(self) -> EnvironmentInfo | None:
        try:
            return self.resolver.environment()
        except Exception as e:
            logger.warning("environment detection failed: %s", e)
            return None

    def environment(self) -> EnvironmentInfo | None:
        return self._environment_or_none()

    def failure_status(self, e: Exception) -> CredentialStatus:
        return CredentialStatus(
            available=False,
            method=CredentialMethod.NONE,
            error=str(e) or type(e).__name__,
            environment=self._environment_or_none(),
        )

    def check_status(self, config: CredentialConfig) -> CredentialStatus:
        try:
            resolution = self.resolver.resolve_detailed(config)
            # platform-role resolution has already called sts:GetCallerIdentity
            identity = resolution.identity or self.resolver.providers.caller_identity(resolution.credential)
            env = self.resolver.environment()
        except Exception as e:
            logger.info("AWS credential status check failed: %s", e)
            return self.failure_status(e)
        method, detail = classify_method(config, env, resolution.strategy)
        return CredentialStatus(
            available=True,
            method=method,
            detail=detail,
            identity=identity,
            environment=env,
        )

    def check_status_raw(self, raw: str, *, env_or_none: EnvLookup | None = None) -> CredentialStatus:
        try:
            config = parse_config(raw, env_or_none=env_or_none)
        except Exception as e:
            return self.failure_status(e)
        return self.check_status(config)

    def list_local_profiles(self) -> list[str]:
        env = self._environment_or_none()
        if env is None or env.is_container:
            return []
        path = self.aws_config_path or default_aws_config_path()
        try:
            if not path.is_file():
                return []
            with path.open("r", encoding="utf-8", errors="replace") as f:
                return parse_profile_names(f)
        except OSError as e:
            logger.warning("failed to read AWS config %s: %s", path, e)
            return []
