from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence
from urllib.request import Request, urlopen

from .settings import (
    AWS_EXECUTION_ENV,
    CGROUP_PATH,
    DOCKERENV_PATH,
    ECS_CONTAINER_METADATA_URI,
    ECS_CONTAINER_METADATA_URI_V4,
    EKS_TOKEN_PATH,
    IMDS_CREDENTIALS_URL,
    KUBERNETES_SERVICE_HOST,
    EnvLookup,
    Settings,
    env_lookup,
)

logger = logging.getLogger(__name__)

CONTAINER_CGROUP_MARKERS = ("docker", "containerd", "kubepods")
AWS_CLI_VERSION_COMMAND = ("aws", "--version")


@dataclass(frozen=True)
class EnvironmentInfo:
    is_container: bool
    is_ecs: bool
    is_eks: bool
    has_aws_cli: bool
    has_iam_role: bool

    @property
    def has_platform_role(self) -> bool:
        """True when the host platform injects role credentials into this container."""
        return self.is_container and (self.is_ecs or self.is_eks or self.has_iam_role)

    def to_dict(self) -> dict[str, bool]:
        return {
            "isContainer": self.is_container,
            "isECS": self.is_ecs,
            "isEKS": self.is_eks,
            "hasAwsCli": self.has_aws_cli,
            "hasIamRole": self.has_iam_role,
        }


def _run_version_command(argv: Sequence[str], timeout_seconds: float) -> int:
    proc = subprocess.run(
        list(argv),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        timeout=timeout_seconds,
        check=False,
    )
    return int(proc.returncode)


def _http_get_status(url: str, timeout_seconds: float) -> int:
    req = Request(url, method="GET")
    with urlopen(req, timeout=timeout_seconds) as resp:
        return int(getattr(resp, "status", 200))


class EnvironmentProbe:
    """Best-effort runtime platform detection, cached for the life of the probe.

    Every signal is independently fallible; a failing check reports False
    instead of raising.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        env_or_none: EnvLookup | None = None,
        dockerenv_path: Path = DOCKERENV_PATH,
        cgroup_path: Path = CGROUP_PATH,
        eks_token_path: Path = EKS_TOKEN_PATH,
        imds_url: str = IMDS_CREDENTIALS_URL,
        run_command: Callable[[Sequence[str], float], int] = _run_version_command,
        http_get_status: Callable[[str, float], int] = _http_get_status,
    ) -> None:
        self._settings = settings or Settings()
        self._env_or_none = env_or_none or env_lookup()
        self._dockerenv_path = dockerenv_path
        self._cgroup_path = cgroup_path
        self._eks_token_path = eks_token_path
        self._imds_url = imds_url
        self._run_command = run_command
        self._http_get_status = http_get_status
        self._info: EnvironmentInfo | None = None
        self._lock = threading.Lock()

    def detect(self) -> EnvironmentInfo:
        info = self._info
        if info is not None:
            return info
        with self._lock:
            if self._info is None:
                self._info = self._probe()
                logger.info("AWS environment detection: %s", self._info.to_dict())
            return self._info

    def _probe(self) -> EnvironmentInfo:
        return EnvironmentInfo(
            is_container=self._check("container", self._is_container),
            is_ecs=self._check("ecs", self._is_ecs),
            is_eks=self._check("eks", self._is_eks),
            has_aws_cli=self._check("aws-cli", self._has_aws_cli),
            has_iam_role=self._check("iam-role", self._has_iam_role),
        )

    @staticmethod
    def _check(name: str, fn: Callable[[], bool]) -> bool:
        try:
            return bool(fn())
        except Exception as e:
            logger.debug("environment check %s failed: %s", name, e)
            return False

    def _is_container(self) -> bool:
        if self._dockerenv_path.exists():
            return True
        if not self._cgroup_path.exists():
            return False
        text = self._cgroup_path.read_text(encoding="utf-8", errors="replace")
        return any(marker in text for marker in CONTAINER_CGROUP_MARKERS)

    def _is_ecs(self) -> bool:
        execution_env = self._env_or_none(AWS_EXECUTION_ENV) or ""
        if "ECS" in execution_env:
            return True
        return bool(self._env_or_none(ECS_CONTAINER_METADATA_URI, ECS_CONTAINER_METADATA_URI_V4))

    def _is_eks(self) -> bool:
        return self._eks_token_path.exists() and bool(self._env_or_none(KUBERNETES_SERVICE_HOST))

    def _has_aws_cli(self) -> bool:
        return self._run_command(AWS_CLI_VERSION_COMMAND, self._settings.cli_timeout_seconds) == 0

    def _has_iam_role(self) -> bool:
        status = self._http_get_status(self._imds_url, self._settings.imds_timeout_seconds)
        return 200 <= status < 300

