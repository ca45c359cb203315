from __future__ import annotations

import logging
from typing import Any, Callable

import boto3
from botocore.config import Config

from .config_parser import AutoConfig, CredentialConfig, StaticConfig, parse_config
from .credentials import ResolvedCredential
from .settings import (
    AWS_ACCESS_KEY_ID,
    AWS_BEDROCK_CONFIG,
    AWS_CONTAINER_CREDENTIALS_RELATIVE_URI,
    AWS_PROFILE,
    AWS_ROLE_ARN,
    AWS_SECRET_ACCESS_KEY,
    AWS_SESSION_TOKEN,
    AWS_WEB_IDENTITY_TOKEN_FILE,
    REGION_ENV_NAMES,
    EnvLookup,
    env_lookup,
)

logger = logging.getLogger(__name__)

DEFAULT_BEDROCK_REGION = "us-east-1"

AMBIENT_CREDENTIAL_ENV_NAMES = (
    AWS_ACCESS_KEY_ID,
    AWS_PROFILE,
    AWS_CONTAINER_CREDENTIALS_RELATIVE_URI,
    AWS_WEB_IDENTITY_TOKEN_FILE,
    AWS_ROLE_ARN,
)


def has_ambient_credentials(env_or_none: EnvLookup | None = None) -> bool:
    """True when env vars alone can drive the AWS credential chain for Bedrock."""
    lookup = env_or_none or env_lookup()
    return bool(lookup(*REGION_ENV_NAMES)) and bool(lookup(*AMBIENT_CREDENTIAL_ENV_NAMES))


def config_from_env(env_or_none: EnvLookup | None = None) -> CredentialConfig:
    """Build a config from AWS_BEDROCK_CONFIG, or from the plain AWS env vars."""
    lookup = env_or_none or env_lookup()
    raw = lookup(AWS_BEDROCK_CONFIG)
    if raw:
        return parse_config(raw, env_or_none=lookup)

    region = lookup(*REGION_ENV_NAMES) or DEFAULT_BEDROCK_REGION
    access_key_id = lookup(AWS_ACCESS_KEY_ID)
    secret_access_key = lookup(AWS_SECRET_ACCESS_KEY)
    logger.debug(
        "Bedrock config from env: region=%s hasAccessKeyId=%s hasSecretAccessKey=%s",
        region,
        bool(access_key_id),
        bool(secret_access_key),
    )
    if access_key_id and secret_access_key:
        return StaticConfig(
            region=region,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=lookup(AWS_SESSION_TOKEN),
        )
    return AutoConfig(region=region, profile=lookup(AWS_PROFILE))


def bedrock_runtime_client(
    credential: ResolvedCredential,
    *,
    session_factory: Callable[..., Any] = boto3.session.Session,
    max_attempts: int = 3,
) -> Any:
    session = session_factory(
        aws_access_key_id=credential.access_key_id,
        aws_secret_access_key=credential.secret_access_key,
        aws_session_token=credential.session_token,
        region_name=credential.region,
    )
    config = Config(
        region_name=credential.region,
        retries={"max_attempts": max_attempts, "mode": "adaptive"},
    )
    return session.client("bedrock-runtime", region_name=credential.region, config=config)
