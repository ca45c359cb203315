import json

import pytest

from bedrock_creds.config_parser import (
    AutoConfig,
    SsoConfig,
    StaticConfig,
    config_to_dict,
    dump_config,
    parse_config,
)
from bedrock_creds.errors import (
    ConfigError,
    IncompleteSSOConfigError,
    IncompleteStaticCredentialsError,
    MalformedConfigError,
    MissingRegionError,
)
from bedrock_creds.settings import env_lookup


def test_parse_legacy_static_shape():
    config = parse_config('{"region":"us-east-1","accessKeyId":"AKIA1","secretAccessKey":"s1"}')

    assert config == StaticConfig(region="us-east-1", access_key_id="AKIA1", secret_access_key="s1")
    assert config.auth_type == "static"


def test_parse_keeps_session_token():
    config = parse_config(
        json.dumps(
            {
                "region": "eu-west-1",
                "accessKeyId": "ASIA1",
                "secretAccessKey": "s1",
                "sessionToken": "tok",
            }
        )
    )
    assert isinstance(config, StaticConfig)
    assert config.session_token == "tok"


def test_static_repr_hides_secret():
    config = parse_config('{"region":"us-east-1","accessKeyId":"AKIA1","secretAccessKey":"very-secret"}')
    assert "very-secret" not in repr(config)


@pytest.mark.parametrize("raw", ["", "   ", "not json", "[1, 2]", '"region"', "null"])
def test_parse_rejects_non_object(raw):
    with pytest.raises(MalformedConfigError):
        parse_config(raw)


def test_parse_rejects_non_string_field():
    with pytest.raises(MalformedConfigError, match="'region'"):
        parse_config('{"region": 5}')


def test_parse_rejects_unknown_auth_type():
    with pytest.raises(MalformedConfigError, match="invalid authType 'saml'"):
        parse_config('{"region":"us-east-1","authType":"saml"}')


@pytest.mark.parametrize(
    "raw",
    [
        "{}",
        '{"accessKeyId":"AKIA1","secretAccessKey":"s1"}',
        '{"authType":"sso","profile":"dev"}',
        '{"authType":"auto","region":"  "}',
    ],
)
def test_parse_missing_region_without_env(raw):
    with pytest.raises(MissingRegionError, match="missing region"):
        parse_config(raw)


def test_parse_region_falls_back_to_env():
    config = parse_config('{"authType":"auto"}', env_or_none=env_lookup({"AWS_REGION": "ap-south-1"}))
    assert config == AutoConfig(region="ap-south-1")


def test_parse_region_falls_back_to_default_region_env():
    config = parse_config(
        '{"authType":"auto"}',
        env_or_none=env_lookup({"AWS_DEFAULT_REGION": "us-west-2"}),
    )
    assert config.region == "us-west-2"


def test_parse_region_in_config_wins_over_env():
    config = parse_config(
        '{"region":"us-east-1"}',
        env_or_none=env_lookup({"AWS_REGION": "ap-south-1"}),
    )
    assert config.region == "us-east-1"


def test_parse_missing_region_with_empty_env():
    with pytest.raises(MissingRegionError):
        parse_config('{"authType":"auto"}', env_or_none=env_lookup({}))


@pytest.mark.parametrize(
    "payload",
    [
        {"region": "us-east-1", "accessKeyId": "AKIA1"},
        {"region": "us-east-1", "secretAccessKey": "s1"},
        {"region": "us-east-1", "accessKeyId": "AKIA1", "secretAccessKey": ""},
    ],
)
def test_parse_half_static_pair_is_incomplete(payload):
    with pytest.raises(IncompleteStaticCredentialsError, match="must be set together"):
        parse_config(json.dumps(payload))


def test_parse_auto_with_half_static_pair_is_incomplete():
    with pytest.raises(IncompleteStaticCredentialsError, match="missing secretAccessKey"):
        parse_config('{"authType":"auto","region":"us-east-1","accessKeyId":"AKIA1"}')


def test_parse_explicit_static_requires_both_keys():
    with pytest.raises(IncompleteStaticCredentialsError, match="authType=static"):
        parse_config('{"authType":"static","region":"us-east-1"}')


def test_parse_sso_without_profile_or_start_url():
    with pytest.raises(IncompleteSSOConfigError, match="requires profile"):
        parse_config('{"authType":"sso","region":"us-west-2"}')


def test_parse_sso_start_url_without_sso_region():
    with pytest.raises(IncompleteSSOConfigError):
        parse_config('{"authType":"sso","region":"us-west-2","ssoStartUrl":"https://d-1.awsapps.com/start"}')


def test_parse_sso_with_profile():
    config = parse_config('{"authType":"sso","region":"us-west-2","profile":"dev"}')
    assert config == SsoConfig(region="us-west-2", profile="dev")


def test_parse_sso_with_direct_settings():
    config = parse_config(
        json.dumps(
            {
                "authType": "sso",
                "region": "us-west-2",
                "ssoStartUrl": "https://d-1.awsapps.com/start",
                "ssoRegion": "us-east-1",
                "ssoAccountId": "123456789012",
                "ssoRoleName": "BedrockUser",
            }
        )
    )
    assert isinstance(config, SsoConfig)
    assert config.has_direct_sso()
    assert config.sso_account_id == "123456789012"
    assert config.sso_role_name == "BedrockUser"


def test_parse_auto_without_keys():
    config = parse_config('{"authType":"auto","region":"us-east-1","profile":"dev"}')
    assert config == AutoConfig(region="us-east-1", profile="dev")


def test_parse_errors_are_value_errors():
    with pytest.raises(ValueError):
        parse_config("{}")
    assert issubclass(MissingRegionError, ConfigError)
    assert MissingRegionError.exit_code == 2


@pytest.mark.parametrize(
    "config",
    [
        StaticConfig(region="us-east-1", access_key_id="AKIA1", secret_access_key="s1"),
        StaticConfig(region="us-east-1", access_key_id="ASIA1", secret_access_key="s1", session_token="t"),
        SsoConfig(region="us-west-2", profile="dev"),
        SsoConfig(
            region="us-west-2",
            sso_start_url="https://d-1.awsapps.com/start",
            sso_region="us-east-1",
            sso_role_name="BedrockUser",
        ),
        AutoConfig(region="eu-central-1"),
        AutoConfig(region="eu-central-1", profile="ops"),
    ],
)
def test_dump_then_parse_reproduces_config(config):
    assert parse_config(dump_config(config)) == config


def test_config_to_dict_uses_camel_case_keys():
    out = config_to_dict(SsoConfig(region="us-west-2", sso_start_url="https://x", sso_region="us-east-1"))
    assert out == {
        "authType": "sso",
        "region": "us-west-2",
        "ssoStartUrl": "https://x",
        "ssoRegion": "us-east-1",
    }
