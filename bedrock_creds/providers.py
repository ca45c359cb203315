from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

import boto3
import botocore.session
from botocore import UNSIGNED
from botocore.config import Config
from botocore.credentials import JSONFileCache
from botocore.exceptions import NoCredentialsError
from botocore.utils import SSOTokenLoader

from .credentials import CallerIdentity, ResolvedCredential
from .settings import Settings

logger = logging.getLogger(__name__)

SSO_CACHE_DIR = os.path.expanduser(os.path.join("~", ".aws", "sso", "cache"))


class CredentialProviders(Protocol):
    """Opaque capability for fetching and checking AWS credentials."""

    def default_chain(self, *, region: str, profile: str | None = None) -> ResolvedCredential: ...

    def from_profile(self, *, profile: str, region: str) -> ResolvedCredential: ...

    def from_sso(
        self,
        *,
        start_url: str,
        sso_region: str,
        account_id: str | None,
        role_name: str | None,
        region: str,
    ) -> ResolvedCredential: ...

    def caller_identity(self, credential: ResolvedCredential) -> CallerIdentity: ...


def _expiry_text(raw: Any) -> str | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.astimezone(timezone.utc).isoformat()
    if isinstance(raw, (int, float)):
        # SSO GetRoleCredentials reports epoch milliseconds.
        return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc).isoformat()
    return str(raw)


class Boto3CredentialProviders:
    """boto3/botocore implementation of :class:`CredentialProviders`."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        session_factory: Callable[..., Any] = boto3.session.Session,
        sso_token_loader: Callable[[str], dict[str, Any]] | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._session_factory = session_factory
        self._sso_token_loader = sso_token_loader

    def _client_config(self, **extra: Any) -> Config:
        return Config(
            connect_timeout=self._settings.sts_connect_timeout_seconds,
            read_timeout=self._settings.sts_read_timeout_seconds,
            retries={"max_attempts": 1},
            **extra,
        )

    def _session(self, *, region: str, profile: str | None = None) -> Any:
        core = botocore.session.get_session()
        core.set_config_variable("metadata_service_timeout", self._settings.imds_timeout_seconds)
        core.set_config_variable("metadata_service_num_attempts", 1)
        kwargs: dict[str, Any] = {"botocore_session": core, "region_name": region}
        if profile:
            kwargs["profile_name"] = profile
        return self._session_factory(**kwargs)

    @staticmethod
    def _frozen(session: Any, *, region: str) -> ResolvedCredential:
        creds = session.get_credentials()
        if creds is None:
            raise NoCredentialsError()
        frozen = creds.get_frozen_credentials()
        return ResolvedCredential(
            access_key_id=frozen.access_key,
            secret_access_key=frozen.secret_key,
            session_token=frozen.token or None,
            region=region,
        )

    def default_chain(self, *, region: str, profile: str | None = None) -> ResolvedCredential:
        return self._frozen(self._session(region=region, profile=profile), region=region)

    def from_profile(self, *, profile: str, region: str) -> ResolvedCredential:
        return self._frozen(self._session(region=region, profile=profile), region=region)

    def _load_sso_token(self, start_url: str) -> str:
        loader = self._sso_token_loader or SSOTokenLoader(cache=JSONFileCache(SSO_CACHE_DIR))
        token = loader(start_url)
        access_token = str((token or {}).get("accessToken") or "").strip()
        if not access_token:
            raise RuntimeError(f"no cached SSO access token for {start_url} (run `aws sso login`)")
        return access_token

    @staticmethod
    def _single(values: list[str], *, label: str, start_url: str) -> str:
        if len(values) == 1:
            return values[0]
        if not values:
            raise RuntimeError(f"no {label} available from SSO portal {start_url}")
        raise RuntimeError(
            f"multiple {label}s available from SSO portal {start_url} "
            f"({', '.join(sorted(values))}); set the {label} explicitly"
        )

    def from_sso(
        self,
        *,
        start_url: str,
        sso_region: str,
        account_id: str | None,
        role_name: str | None,
        region: str,
    ) -> ResolvedCredential:
        access_token = self._load_sso_token(start_url)
        sso = self._session(region=sso_region).client(
            "sso",
            region_name=sso_region,
            config=self._client_config(signature_version=UNSIGNED),
        )

        if not account_id:
            accounts: list[str] = []
            for page in sso.get_paginator("list_accounts").paginate(accessToken=access_token):
                accounts.extend(str(a.get("accountId") or "") for a in page.get("accountList") or [])
            account_id = self._single([a for a in accounts if a], label="ssoAccountId", start_url=start_url)
        if not role_name:
            roles: list[str] = []
            for page in sso.get_paginator("list_account_roles").paginate(
                accessToken=access_token, accountId=account_id
            ):
                roles.extend(str(r.get("roleName") or "") for r in page.get("roleList") or [])
            role_name = self._single([r for r in roles if r], label="ssoRoleName", start_url=start_url)

        resp = sso.get_role_credentials(roleName=role_name, accountId=account_id, accessToken=access_token)
        role_creds = resp.get("roleCredentials") or {}
        logger.debug("SSO role credentials obtained for account %s role %s", account_id, role_name)
        return ResolvedCredential(
            access_key_id=str(role_creds.get("accessKeyId") or ""),
            secret_access_key=str(role_creds.get("secretAccessKey") or ""),
            session_token=role_creds.get("sessionToken") or None,
            region=region,
            expiration=_expiry_text(role_creds.get("expiration")),
        )

    def caller_identity(self, credential: ResolvedCredential) -> CallerIdentity:
        sts = self._session_factory(
            aws_access_key_id=credential.access_key_id,
            aws_secret_access_key=credential.secret_access_key,
            aws_session_token=credential.session_token,
            region_name=credential.region,
        ).client("sts", config=self._client_config())
        resp = sts.get_caller_identity()
        return CallerIdentity(
            account=str(resp.get("Account") or ""),
            arn=str(resp.get("Arn") or ""),
            user_id=str(resp.get("UserId") or ""),
        )
