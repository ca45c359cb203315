import os

import pytest

from bedrock_creds.resolver import CredentialResolver, build_resolver
from bedrock_creds.settings import Settings


def _require_env(name: str) -> str:
    val = os.environ.get(name)
    if not val:
        raise RuntimeError(f"missing required env var: {name}")
    return val


def pytest_collection_modifyitems(config, items):
    if os.environ.get("RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="integration tests require RUN_INTEGRATION=1")
    for item in items:
        if item.nodeid.startswith("tests/integration/"):
            item.add_marker(skip)


@pytest.fixture(scope="session")
def it_env() -> dict[str, str]:
    # Require explicit opt-in.
    if os.environ.get("RUN_INTEGRATION") != "1":
        pytest.skip("set RUN_INTEGRATION=1 to run integration tests")

    # The caller provides working AWS credentials via the usual chain.
    _require_env("AWS_REGION")
    return os.environ.copy()


@pytest.fixture(scope="session")
def live_resolver(it_env: dict[str, str]) -> CredentialResolver:
    return build_resolver(settings=Settings.from_env())
