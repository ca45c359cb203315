from __future__ import annotations

from typing import Any

import pytest

from bedrock_creds.credentials import CallerIdentity, ResolvedCredential
from bedrock_creds.environment import EnvironmentInfo
from bedrock_creds.resolver import CredentialResolver


def _env_info(**flags: bool) -> EnvironmentInfo:
    values = {
        "is_container": False,
        "is_ecs": False,
        "is_eks": False,
        "has_aws_cli": False,
        "has_iam_role": False,
    }
    values.update(flags)
    return EnvironmentInfo(**values)


class FixedProbe:
    def __init__(self, info: EnvironmentInfo) -> None:
        self.info = info
        self.calls = 0

    def detect(self) -> EnvironmentInfo:
        self.calls += 1
        return self.info


class FakeProviders:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.chain_credential = ResolvedCredential(
            access_key_id="ASIACHAIN",
            secret_access_key="chain-secret",
            session_token="chain-token",
            region="us-east-1",
        )
        self.profile_credential = ResolvedCredential(
            access_key_id="ASIAPROFILE",
            secret_access_key="profile-secret",
            session_token="profile-token",
            region="us-east-1",
        )
        self.sso_credential = ResolvedCredential(
            access_key_id="ASIASSO",
            secret_access_key="sso-secret",
            session_token="sso-token",
            region="us-east-1",
        )
        self.identity = CallerIdentity(
            account="123456789012",
            arn="arn:aws:sts::123456789012:assumed-role/BedrockTask/abc",
            user_id="AROAEXAMPLE:abc",
        )
        self.chain_error: Exception | None = None
        self.profile_error: Exception | None = None
        self.identity_error: Exception | None = None

    def default_chain(self, *, region: str, profile: str | None = None) -> ResolvedCredential:
        self.calls.append(("default_chain", {"region": region, "profile": profile}))
        if self.chain_error is not None:
            raise self.chain_error
        return self.chain_credential

    def from_profile(self, *, profile: str, region: str) -> ResolvedCredential:
        self.calls.append(("from_profile", {"profile": profile, "region": region}))
        if self.profile_error is not None:
            raise self.profile_error
        return self.profile_credential

    def from_sso(self, **kwargs: Any) -> ResolvedCredential:
        self.calls.append(("from_sso", kwargs))
        return self.sso_credential

    def caller_identity(self, credential: ResolvedCredential) -> CallerIdentity:
        self.calls.append(("caller_identity", {"access_key_id": credential.access_key_id}))
        if self.identity_error is not None:
            raise self.identity_error
        return self.identity

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def env_info():
    return _env_info


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def make_resolver(providers: FakeProviders):
    def inner(info: EnvironmentInfo, *, validate: bool = True) -> CredentialResolver:
        return CredentialResolver(
            probe=FixedProbe(info),  # type: ignore[arg-type]
            providers=providers,
            validate_platform_credentials=validate,
        )

    return inner
