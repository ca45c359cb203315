from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from .config_parser import AutoConfig, CredentialConfig, SsoConfig, StaticConfig
from .credentials import CallerIdentity, ResolvedCredential
from .environment import EnvironmentInfo, EnvironmentProbe
from .errors import (
    CredentialError,
    CredentialResolutionFailedError,
    CredentialValidationFailedError,
    IncompleteSSOConfigError,
)
from .providers import Boto3CredentialProviders, CredentialProviders
from .settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Strategy(str, enum.Enum):
    PLATFORM_ROLE = "platform-role"
    LOCAL_SSO = "local-sso"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Resolution:
    strategy: Strategy
    credential: ResolvedCredential
    identity: CallerIdentity | None = None


def select_strategy(config: CredentialConfig, env: EnvironmentInfo) -> Strategy:
    """Pick the resolution strategy; platform-native credentials outrank caller-supplied ones."""
    if env.has_platform_role:
        return Strategy.PLATFORM_ROLE
    if env.has_aws_cli and isinstance(config, SsoConfig):
        return Strategy.LOCAL_SSO
    return Strategy.FALLBACK


class CredentialResolver:
    def __init__(
        self,
        *,
        probe: EnvironmentProbe,
        providers: CredentialProviders,
        validate_platform_credentials: bool = True,
    ) -> None:
        self.probe = probe
        self.providers = providers
        self.validate_platform_credentials = validate_platform_credentials

    def environment(self) -> EnvironmentInfo:
        return self.probe.detect()

    def select_strategy(self, config: CredentialConfig) -> Strategy:
        return select_strategy(config, self.probe.detect())

    def resolve(self, config: CredentialConfig) -> ResolvedCredential:
        return self.resolve_detailed(config).credential

    def resolve_detailed(self, config: CredentialConfig) -> Resolution:
        """Resolve and report the strategy used, plus the STS identity when it was checked."""
        strategy = self.select_strategy(config)
        logger.info("resolving AWS credentials via %s strategy (region=%s)", strategy.value, config.region)
        if strategy is Strategy.PLATFORM_ROLE:
            return self._platform_role(config)
        if strategy is Strategy.LOCAL_SSO:
            assert isinstance(config, SsoConfig)
            return Resolution(strategy, self._local_sso(config))
        return Resolution(strategy, self._fallback(config))

    def _call(self, strategy: Strategy, what: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except CredentialError:
            raise
        except Exception as e:
            raise CredentialResolutionFailedError(
                f"AWS credential resolution failed ({strategy.value} strategy, {what}): {e}",
                strategy=strategy.value,
            ) from e

    def _platform_role(self, config: CredentialConfig) -> Resolution:
        credential = self._call(
            Strategy.PLATFORM_ROLE,
            "platform credential chain",
            lambda: self.providers.default_chain(region=config.region),
        )
        identity: CallerIdentity | None = None
        if self.validate_platform_credentials:
            try:
                identity = self.providers.caller_identity(credential)
            except Exception as e:
                raise CredentialValidationFailedError(
                    f"Credential validation failed ({Strategy.PLATFORM_ROLE.value} strategy, "
                    f"sts:GetCallerIdentity in {config.region}): {e}"
                ) from e
            logger.info("platform credentials validated for %s", identity.arn)
        return Resolution(Strategy.PLATFORM_ROLE, credential, identity)

    def _local_sso(self, config: SsoConfig) -> ResolvedCredential:
        if config.profile:
            profile = config.profile
            return self._call(
                Strategy.LOCAL_SSO,
                f"profile {profile!r}",
                lambda: self.providers.from_profile(profile=profile, region=config.region),
            )
        if config.has_direct_sso():
            return self._call(
                Strategy.LOCAL_SSO,
                f"SSO portal {config.sso_start_url}",
                lambda: self.providers.from_sso(
                    start_url=str(config.sso_start_url),
                    sso_region=str(config.sso_region),
                    account_id=config.sso_account_id,
                    role_name=config.sso_role_name,
                    region=config.region,
                ),
            )
        raise IncompleteSSOConfigError(
            f"{Strategy.LOCAL_SSO.value} strategy requires profile, or both ssoStartUrl and ssoRegion"
        )

    def _fallback(self, config: CredentialConfig) -> ResolvedCredential:
        if isinstance(config, StaticConfig):
            return ResolvedCredential(
                access_key_id=config.access_key_id,
                secret_access_key=config.secret_access_key,
                session_token=config.session_token,
                region=config.region,
            )
        profile = config.profile if isinstance(config, AutoConfig) else None
        return self._call(
            Strategy.FALLBACK,
            "default credential chain",
            lambda: self.providers.default_chain(region=config.region, profile=profile),
        )


def build_resolver(
    *,
    settings: Settings | None = None,
    validate_platform_credentials: bool = True,
) -> CredentialResolver:
    settings = settings or Settings.from_env()
    return CredentialResolver(
        probe=EnvironmentProbe(settings=settings),
        providers=Boto3CredentialProviders(settings=settings),
        validate_platform_credentials=validate_platform_credentials,
    )
