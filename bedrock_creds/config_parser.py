from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import (
    IncompleteSSOConfigError,
    IncompleteStaticCredentialsError,
    MalformedConfigError,
    MissingRegionError,
)
from .settings import REGION_ENV_NAMES, EnvLookup

AUTH_TYPE_STATIC = "static"
AUTH_TYPE_SSO = "sso"
AUTH_TYPE_AUTO = "auto"
AUTH_TYPES = (AUTH_TYPE_STATIC, AUTH_TYPE_SSO, AUTH_TYPE_AUTO)

_STRING_FIELDS = (
    "authType",
    "region",
    "profile",
    "ssoStartUrl",
    "ssoRegion",
    "ssoAccountId",
    "ssoRoleName",
    "accessKeyId",
    "secretAccessKey",
    "sessionToken",
)

_FORMAT_HINT = (
    "expected a JSON object with region and either explicit credentials "
    "(accessKeyId, secretAccessKey) or an authType of 'sso'/'auto'"
)


@dataclass(frozen=True)
class StaticConfig:
    region: str
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)

    auth_type = AUTH_TYPE_STATIC


@dataclass(frozen=True)
class SsoConfig:
    region: str
    profile: str | None = None
    sso_start_url: str | None = None
    sso_region: str | None = None
    sso_account_id: str | None = None
    sso_role_name: str | None = None

    auth_type = AUTH_TYPE_SSO

    def has_direct_sso(self) -> bool:
        return bool(self.sso_start_url and self.sso_region)


@dataclass(frozen=True)
class AutoConfig:
    region: str
    profile: str | None = None

    auth_type = AUTH_TYPE_AUTO


CredentialConfig = Union[StaticConfig, SsoConfig, AutoConfig]


def _field(obj: dict[str, Any], key: str) -> str | None:
    val = obj.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise MalformedConfigError(f"invalid config field {key!r}: expected string, got {type(val).__name__}")
    out = val.strip()
    return out or None


def _load_object(raw: str) -> dict[str, Any]:
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedConfigError(f"empty configuration ({_FORMAT_HINT})")
    try:
        val = json.loads(raw)
    except ValueError as e:
        raise MalformedConfigError(f"invalid configuration JSON: {e} ({_FORMAT_HINT})") from e
    if not isinstance(val, dict):
        raise MalformedConfigError(f"invalid configuration: expected JSON object ({_FORMAT_HINT})")
    return val


def _require_key_pair(
    access_key_id: str | None,
    secret_access_key: str | None,
    *,
    auth_type: str,
) -> None:
    if access_key_id and secret_access_key:
        return
    missing = "secretAccessKey" if access_key_id else "accessKeyId"
    raise IncompleteStaticCredentialsError(
        f"missing {missing} (authType={auth_type}: accessKeyId and secretAccessKey must be set together)"
    )


def parse_config(raw: str, *, env_or_none: EnvLookup | None = None) -> CredentialConfig:
    """Parse and validate a JSON credential configuration.

    ``env_or_none`` is consulted only for the region fallback
    (AWS_REGION, then AWS_DEFAULT_REGION).
    """

    obj = _load_object(raw)
    fields = {k: _field(obj, k) for k in _STRING_FIELDS}

    region = fields["region"]
    if not region and env_or_none is not None:
        region = (env_or_none(*REGION_ENV_NAMES) or "").strip() or None
    if not region:
        raise MissingRegionError(
            "missing region (set region in the configuration or env AWS_REGION / AWS_DEFAULT_REGION)"
        )

    auth_type = fields["authType"]
    if auth_type is not None and auth_type not in AUTH_TYPES:
        raise MalformedConfigError(
            f"invalid authType {auth_type!r} (expected one of: {', '.join(AUTH_TYPES)})"
        )

    if auth_type == AUTH_TYPE_SSO:
        profile = fields["profile"]
        if not profile and not (fields["ssoStartUrl"] and fields["ssoRegion"]):
            raise IncompleteSSOConfigError(
                "authType=sso requires profile, or both ssoStartUrl and ssoRegion"
            )
        return SsoConfig(
            region=region,
            profile=profile,
            sso_start_url=fields["ssoStartUrl"],
            sso_region=fields["ssoRegion"],
            sso_account_id=fields["ssoAccountId"],
            sso_role_name=fields["ssoRoleName"],
        )

    access_key_id = fields["accessKeyId"]
    secret_access_key = fields["secretAccessKey"]
    if auth_type == AUTH_TYPE_STATIC or access_key_id or secret_access_key:
        _require_key_pair(access_key_id, secret_access_key, auth_type=auth_type or "legacy")
        return StaticConfig(
            region=region,
            access_key_id=str(access_key_id),
            secret_access_key=str(secret_access_key),
            session_token=fields["sessionToken"],
        )

    return AutoConfig(region=region, profile=fields["profile"])


def config_to_dict(config: CredentialConfig) -> dict[str, str]:
    out: dict[str, str] = {"authType": config.auth_type, "region": config.region}
    if isinstance(config, StaticConfig):
        out["accessKeyId"] = config.access_key_id
        out["secretAccessKey"] = config.secret_access_key
        if config.session_token:
            out["sessionToken"] = config.session_token
    elif isinstance(config, SsoConfig):
        for key, val in (
            ("profile", config.profile),
            ("ssoStartUrl", config.sso_start_url),
            ("ssoRegion", config.sso_region),
            ("ssoAccountId", config.sso_account_id),
            ("ssoRoleName", config.sso_role_name),
        ):
            if val:
                out[key] = val
    elif config.profile:
        out["profile"] = config.profile
    return out


def dump_config(config: CredentialConfig) -> str:
    return json.dumps(config_to_dict(config), separators=(",", ":"), sort_keys=True)
