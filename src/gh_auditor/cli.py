import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from .checks import default_checks
from .config import GITHUB_AUTH_ENV_KEY, CHECK_TOGGLES, AuditorSettings, Config
from .core import LoggingObserver, audit_organisation
from .errors import ConfigurationError
from .reporters import FORMATS, get_reporter

EXIT_OK = 0
EXIT_AUDIT_FAILED = 1
EXIT_CHECK_ERROR = 2
EXIT_CONFIG_ERROR = 3


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # requests/urllib3 are too chatty even at debug
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _exit_code(report) -> int:
    if report.passed:
        return EXIT_OK
    if report.has_errors:
        return EXIT_CHECK_ERROR
    return EXIT_AUDIT_FAILED


@click.group()
def cli():
    """gh-auditor - audit the security posture of a GitHub organisation."""
    pass


@cli.command()
@click.argument("org", type=str, required=True)
@click.option(
    "--token",
    type=str,
    envvar=GITHUB_AUTH_ENV_KEY,
    help=f"GitHub access token (can also be set via {GITHUB_AUTH_ENV_KEY} env var)",
)
@click.option(
    "--config", "-c", type=click.Path(exists=True), help="Path to config file"
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(FORMATS),
    default="console",
    help="Output format",
)
@click.option("--api-url", type=str, default=None, help="GitHub REST API URL")
@click.option(
    "--timeout", type=float, default=None, help="Per-request timeout in seconds"
)
@click.option(
    "--enable",
    "enable",
    type=click.Choice(list(CHECK_TOGGLES)),
    multiple=True,
    help="Enable a check (repeatable)",
)
@click.option(
    "--disable",
    "disable",
    type=click.Choice(list(CHECK_TOGGLES)),
    multiple=True,
    help="Disable a check (repeatable)",
)
@click.option(
    "--details/--no-details",
    default=True,
    help="Show the evidence and recommendation for each failure",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every request and check")
def audit(org, token, config, format, api_url, timeout, enable, disable, details, verbose):
    """Audit a GitHub organisation.

    ORG: GitHub organisation login
    """
    _configure_logging(verbose)

    try:
        config_obj = Config.load(Path(config) if config else None)
        audit_config = config_obj.audit_config().with_checks(enable=enable, disable=disable)
        settings = AuditorSettings.create(
            org,
            token=token,
            config=config_obj,
            audit=audit_config,
            api_url=api_url,
            timeout=timeout,
        )
        report = audit_organisation(settings, observer=LoggingObserver())
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    reporter = get_reporter(format=format, show_details=details)
    reporter.report(report)

    sys.exit(_exit_code(report))


@cli.command("list-checks")
@click.option(
    "--config", "-c", type=click.Path(exists=True), help="Path to config file"
)
def list_checks(config):
    """List the available checks and whether they are enabled."""
    try:
        audit_config = Config.load(Path(config) if config else None).audit_config()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    for check in default_checks():
        state = "enabled" if check.is_enabled(audit_config) else "disabled"
        click.echo(f"{check.check_id:<26} {state:<9} {check.description}")


if __name__ == "__main__":
    cli()
