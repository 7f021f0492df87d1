"""SAML CLI commands for assertion generation, verification and token exchange.

This module provides CLI commands including:
- saml assertion: Print a signed assertion for the configured customer
- saml verify: Check the signature and validity window of a signed assertion
- token: Exchange a fresh assertion for an OAuth token
"""

import logging
from pathlib import Path
from typing import NoReturn, Optional

import click

from intuit_cad.config.manager import require_credentials
from intuit_cad.config.schema import Config
from intuit_cad.saml import (
    AssertionBuilder,
    SignatureVerifier,
    acquire_token,
    encode_assertion,
    serialize_assertion,
    sign_assertion,
)
from intuit_cad.saml.verifier import parse_assertion_times
from intuit_cad.utils.exceptions import ConfigurationError, IntuitCADError

logger = logging.getLogger(__name__)


def scoped_config(ctx: click.Context, customer_id: Optional[str]) -> Config:
    """Return the loaded config, scoped to ``customer_id`` when given."""
    config: Config = ctx.obj["config"]
    return config.scope(customer_id) if customer_id else config


def fail(message: str, error: Exception) -> NoReturn:
    """Report a failed command and exit with status 1."""
    click.echo(click.style("✗", fg="red", bold=True) + f" {message}", err=True)
    click.echo(f"\n{error}", err=True)
    raise click.exceptions.Exit(1)


@click.group(name="saml")
def saml_group() -> None:
    """SAML assertion generation and verification commands."""
    pass


@saml_group.command(name="assertion")
@click.option("--customer-id", type=str, default=None, help="Customer to issue the assertion for")
@click.option(
    "--encode",
    is_flag=True,
    help="Print the base64url form posted to the token endpoint",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Save the assertion to a file instead of printing it",
)
@click.pass_context
def assertion(
    ctx: click.Context, customer_id: Optional[str], encode: bool, output: Optional[Path]
) -> None:
    """Build and sign a SAML assertion for the configured customer.

    Examples:

        # Print the signed assertion XML
        intuit-cad saml assertion --customer-id customer-42

        # Print the encoded form sent to the token endpoint
        intuit-cad saml assertion --encode
    """
    config = scoped_config(ctx, customer_id)
    try:
        missing = [
            name
            for name in config.missing_credentials()
            if name in ("customer_id", "saml.provider_id", "saml.private_key_path")
        ]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        built = AssertionBuilder().build(config.saml.provider_id, config.customer_id)
        signed = sign_assertion(built, config.saml.private_key_path)
    except (IntuitCADError, ValueError) as e:
        fail("Assertion generation failed", e)

    text = serialize_assertion(signed)
    if encode:
        text = encode_assertion(text)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        click.echo(click.style("✓", fg="green", bold=True) + f" Assertion written to {output}")
    else:
        click.echo(text)


@saml_group.command(name="verify")
@click.argument("assertion_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--key",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Private key whose public half verifies the signature (default: configured key)",
)
@click.pass_context
def verify(ctx: click.Context, assertion_file: Path, key: Optional[Path]) -> None:
    """Verify the signature and validity window of a signed assertion.

    Example:
        intuit-cad saml verify assertion.xml
    """
    config: Config = ctx.obj["config"]
    key_path = key or config.saml.private_key_path
    if key_path is None:
        fail("Verification failed", ConfigurationError("No key given and saml.private_key_path is unset"))

    signed_xml = assertion_file.read_text(encoding="utf-8")
    try:
        verifier = SignatureVerifier.from_private_key_file(key_path)
        signature_ok = verifier.verify_assertion_xml(signed_xml)
        not_before, not_on_or_after = parse_assertion_times(signed_xml)
    except (IntuitCADError, ValueError) as e:
        fail("Verification failed", e)

    click.echo(f"Signature:  {'valid' if signature_ok else 'INVALID'}")
    click.echo(f"NotBefore:  {not_before.isoformat()}")
    click.echo(f"NotOnOrAfter: {not_on_or_after.isoformat()}")
    if not signature_ok:
        raise click.exceptions.Exit(1)


@click.command(name="token")
@click.option("--customer-id", type=str, default=None, help="Customer to acquire a token for")
@click.pass_context
def token(ctx: click.Context, customer_id: Optional[str]) -> None:
    """Exchange a fresh signed assertion for an OAuth access token.

    The token secret is masked in the output.
    """
    config = scoped_config(ctx, customer_id)
    try:
        require_credentials(config)
        oauth_token = acquire_token(config)
    except IntuitCADError as e:
        fail("Token acquisition failed", e)

    click.echo(click.style("✓", fg="green", bold=True) + " OAuth token acquired")
    click.echo(f"  Customer:     {config.customer_id}")
    click.echo(f"  Token:        {oauth_token.token}")
    click.echo("  Token secret: ***")
