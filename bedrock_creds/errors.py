from __future__ import annotations


class CredentialError(Exception):
    """Base class for every error raised by bedrock_creds."""

    exit_code = 1
    status_code = 500


class ConfigError(CredentialError, ValueError):
    """Raised when caller-supplied configuration is missing or conflicting."""

    exit_code = 2
    status_code = 400


class MalformedConfigError(ConfigError):
    """Raised when the configuration is not a JSON object of the expected shape."""


class MissingRegionError(ConfigError):
    """Raised when no region is configured and no env fallback exists."""


class IncompleteStaticCredentialsError(ConfigError):
    """Raised when only one half of a static key pair is supplied."""


class IncompleteSSOConfigError(ConfigError):
    """Raised when SSO mode has neither a profile nor start URL + SSO region."""


class SsoLoginUnavailableError(ConfigError):
    """Raised when SSO login is requested where it cannot run."""


class ResolutionError(CredentialError):
    """Raised when the environment or a provider fails to yield credentials."""


class CredentialValidationFailedError(ResolutionError):
    """Raised when platform credentials fail the identity check."""


class CredentialResolutionFailedError(ResolutionError):
    """Raised when a credential provider call fails unexpectedly."""

    def __init__(self, message: str, *, strategy: str = "") -> None:
        super().__init__(message)
        self.strategy = strategy


class SsoLoginFailedError(ResolutionError):
    """Raised when `aws sso login` exits with an error."""
