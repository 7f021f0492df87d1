"""Main CLI entry point for intuit-cad.

This module provides the main Click command group for the intuit-cad CLI.
"""

from pathlib import Path
from typing import Optional

import click

from intuit_cad import __version__
from intuit_cad.cli.account_commands import accounts_group, institutions_group
from intuit_cad.cli.saml_commands import saml_group, token
from intuit_cad.config import load_config
from intuit_cad.logging_audit import configure_logging
from intuit_cad.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="intuit-cad")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-secrets/--no-redact-secrets",
    default=None,
    help="Mask tokens, assertions and credentials in logs (default: from config)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_secrets: Optional[bool],
) -> None:
    """intuit-cad - Client for Intuit's Customer Account Data API.

    Acquires OAuth tokens through a signed SAML assertion and queries
    institutions, accounts and transactions for a customer.

    Common usage:

        # Check a configuration file
        intuit-cad config validate config/config.json

        # Acquire a token for a customer
        intuit-cad token --customer-id customer-42

        # List the customer's accounts
        intuit-cad accounts list --customer-id customer-42

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose

    # CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact = config_obj.logging.redact_secrets if redact_secrets is None else redact_secrets

    configure_logging(level=log_level, log_file=log_file_path, redact_secrets=redact)


cli.add_command(saml_group)
cli.add_command(token)
cli.add_command(institutions_group)
cli.add_command(accounts_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        intuit-cad config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")
    click.echo(f"\nCustomer:       {config_obj.customer_id or 'Not configured'}")

    click.echo("\nSAML:")
    click.echo(f"  Provider id:  {config_obj.saml.provider_id or 'Not configured'}")
    click.echo(f"  Private key:  {config_obj.saml.private_key_path or 'Not configured'}")
    click.echo(f"  Token URL:    {config_obj.saml.token_url}")

    click.echo("\nAPI:")
    click.echo(f"  Base URL:     {config_obj.api.base_url}")
    click.echo(f"  Consumer key: {'configured' if config_obj.oauth.consumer_key else 'Not configured'}")

    click.echo("\nTransport:")
    click.echo(f"  Verify TLS:   {config_obj.transport.verify_tls}")
    click.echo(
        f"  Timeouts:     {config_obj.transport.timeout_connect}s connect, "
        f"{config_obj.transport.timeout_read}s read"
    )
    click.echo(f"  Retries:      {config_obj.transport.max_retries}")

    click.echo("\nLogging:")
    click.echo(f"  Level:        {config_obj.logging.level}")
    click.echo(f"  Log file:     {config_obj.logging.log_file}")
    click.echo(f"  Redact:       {config_obj.logging.redact_secrets}")

    missing = config_obj.missing_credentials()
    if missing:
        click.echo(
            click.style("\n!", fg="yellow", bold=True)
            + f" Not set (needed for token acquisition): {', '.join(missing)}"
        )


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"intuit-cad version {__version__}")


if __name__ == "__main__":
    cli()
