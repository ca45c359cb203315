"""Operator CLI for inspecting and resolving Bedrock AWS credentials.

The command surface is implemented with Typer and Rich; command payloads are
JSON on stdout so the output stays machine-friendly.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .bedrock import config_from_env
from .config_parser import CredentialConfig, parse_config
from .errors import ConfigError, CredentialError, MalformedConfigError
from .resolver import CredentialResolver, build_resolver
from .settings import Settings, env_lookup
from .sso import read_profile_sso_config, sso_login
from .status import StatusReporter

app = typer.Typer(
    name="bedrock-creds",
    help="Resolve and diagnose AWS credentials for Amazon Bedrock.",
    no_args_is_help=True,
    add_completion=False,
)

_ERROR_CONSOLE = Console(stderr=True)


@dataclass(frozen=True)
class GlobalOpts:
    raw_config: str | None
    pretty: bool
    validate: bool
    settings: Settings


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {msg}")


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _configure_logging(*, quiet: bool, verbose: bool) -> None:
    level = logging.WARNING if quiet else logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger("bedrock_creds")
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=_ERROR_CONSOLE, show_path=False, show_time=False))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bedrock-creds {__version__}")
        raise typer.Exit(code=0)


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("g"), GlobalOpts):
        return ctx.obj["g"]
    return GlobalOpts(raw_config=None, pretty=False, validate=True, settings=Settings.from_env())


def _ctx_resolver(g: GlobalOpts) -> CredentialResolver:
    return build_resolver(settings=g.settings, validate_platform_credentials=g.validate)


def _ctx_config(g: GlobalOpts) -> CredentialConfig:
    if g.raw_config is not None:
        return parse_config(g.raw_config, env_or_none=env_lookup())
    return config_from_env(env_lookup())


@app.callback()
def app_callback(
    ctx: typer.Context,
    config: str | None = typer.Option(
        None,
        "--config",
        help="Credential configuration JSON (default: env AWS_BEDROCK_CONFIG, then AWS_* env vars)",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Path to a file holding the credential configuration JSON",
    ),
    no_validate: bool = typer.Option(
        False,
        "--no-validate",
        help="Skip the STS identity check on platform role credentials",
    ),
    plain_json: bool = typer.Option(False, "--plain-json", help="Emit compact JSON output"),
    quiet: bool = typer.Option(False, "--quiet", help="Reduce stderr logging"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug stderr logging"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version
    _configure_logging(quiet=quiet, verbose=verbose)
    if config is not None and config_file is not None:
        raise MalformedConfigError("pass only one of --config or --config-file")
    raw = config
    if config_file is not None:
        try:
            raw = config_file.read_text(encoding="utf-8")
        except OSError as e:
            raise MalformedConfigError(f"cannot read --config-file {config_file}: {e}") from e
    ctx.obj = {
        "g": GlobalOpts(
            raw_config=raw,
            pretty=not plain_json,
            validate=not no_validate,
            settings=Settings.from_env(),
        )
    }


@app.command("env", help="Show the detected runtime environment.")
def env_cmd(ctx: typer.Context) -> None:
    g = _ctx_global(ctx)
    info = _ctx_resolver(g).environment()
    _print_json(info.to_dict(), pretty=g.pretty)


@app.command("status", help="Resolve credentials and report the caller identity.")
def status_cmd(ctx: typer.Context) -> None:
    g = _ctx_global(ctx)
    reporter = StatusReporter(_ctx_resolver(g), aws_config_path=g.settings.aws_config_path)
    if g.raw_config is not None:
        status = reporter.check_status_raw(g.raw_config, env_or_none=env_lookup())
    else:
        try:
            config = config_from_env(env_lookup())
        except ConfigError as e:
            status = reporter.failure_status(e)
        else:
            status = reporter.check_status(config)
    _print_json(status.to_dict(), pretty=g.pretty)
    if not status.available:
        raise typer.Exit(code=1)


@app.command("profiles", help="List AWS CLI profiles from the local config file.")
def profiles_cmd(ctx: typer.Context) -> None:
    g = _ctx_global(ctx)
    reporter = StatusReporter(_ctx_resolver(g), aws_config_path=g.settings.aws_config_path)
    env = reporter.environment()
    profiles = reporter.list_local_profiles()
    in_container = bool(env and env.is_container)
    _print_json(
        {
            "profiles": profiles,
            "environment": None if env is None else env.to_dict(),
            "message": "Profiles not available in container environments"
            if in_container
            else f"Found {len(profiles)} AWS profiles",
        },
        pretty=g.pretty,
    )


@app.command("resolve", help="Resolve credentials and print credential_process JSON.")
def resolve_cmd(ctx: typer.Context) -> None:
    g = _ctx_global(ctx)
    credential = _ctx_resolver(g).resolve(_ctx_config(g))
    _print_json(credential.to_credential_process(), pretty=g.pretty)


@app.command("sso-config", help="Show the SSO settings stored for a local profile.")
def sso_config_cmd(
    ctx: typer.Context,
    profile: str = typer.Option("default", "--profile", help="AWS CLI profile name"),
) -> None:
    g = _ctx_global(ctx)
    found = read_profile_sso_config(profile, config_path=g.settings.aws_config_path)
    _print_json(
        {
            "profile": profile,
            "ssoStartUrl": found.sso_start_url if found else None,
            "ssoRegion": found.sso_region if found else None,
            "ssoAccountId": found.sso_account_id if found else None,
            "ssoRoleName": found.sso_role_name if found else None,
            "region": found.region if found else None,
        },
        pretty=g.pretty,
    )


@app.command("sso-login", help="Run `aws sso login` (developer machines only).")
def sso_login_cmd(
    ctx: typer.Context,
    profile: str | None = typer.Option(None, "--profile", help="AWS CLI profile name"),
) -> None:
    g = _ctx_global(ctx)
    env = _ctx_resolver(g).environment()
    output = sso_login(env, profile=profile, timeout_seconds=g.settings.sso_login_timeout_seconds)
    _print_json(
        {
            "success": True,
            "message": "AWS SSO login completed",
            "output": output,
            "environment": env.to_dict(),
        },
        pretty=g.pretty,
    )


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        result = app(args=argv, prog_name="bedrock-creds", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except CredentialError as e:
        _rich_error(str(e))
        return int(e.exit_code)


if __name__ == "__main__":
    raise SystemExit(main())
