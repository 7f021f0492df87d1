"""Account data CLI commands.

This module provides read-only CLI commands against the Customer Account
Data API for the configured customer:
- institutions list / show
- accounts list / show / transactions
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

import click

from intuit_cad.aggregation import CustomerAccountDataClient
from intuit_cad.cli.saml_commands import fail, scoped_config
from intuit_cad.config.manager import require_credentials
from intuit_cad.utils.exceptions import IntuitCADError

logger = logging.getLogger(__name__)

customer_id_option = click.option(
    "--customer-id", type=str, default=None, help="Customer to query (overrides config)"
)


def echo_json(data: Any) -> None:
    """Print decoded API data as indented JSON (Decimal amounts as strings)."""
    click.echo(json.dumps(data, indent=2, default=str))


def open_client(ctx: click.Context, customer_id: Optional[str]) -> CustomerAccountDataClient:
    config = scoped_config(ctx, customer_id)
    try:
        require_credentials(config)
    except IntuitCADError as e:
        fail("Configuration incomplete", e)
    return CustomerAccountDataClient(config)


@click.group(name="institutions")
def institutions_group() -> None:
    """Financial institution lookup commands."""
    pass


@institutions_group.command(name="list")
@customer_id_option
@click.pass_context
def list_institutions(ctx: click.Context, customer_id: Optional[str]) -> None:
    """List institutions supported by the aggregation service."""
    with open_client(ctx, customer_id) as client:
        try:
            institutions = client.institutions()
        except IntuitCADError as e:
            fail("Listing institutions failed", e)
    echo_json(institutions)


@institutions_group.command(name="show")
@click.argument("institution_id")
@customer_id_option
@click.pass_context
def show_institution(ctx: click.Context, institution_id: str, customer_id: Optional[str]) -> None:
    """Show institution details, including the credential keys it expects."""
    with open_client(ctx, customer_id) as client:
        try:
            details = client.institution(institution_id)
        except IntuitCADError as e:
            fail(f"Fetching institution {institution_id} failed", e)
    echo_json(details)


@click.group(name="accounts")
def accounts_group() -> None:
    """Aggregated account commands."""
    pass


@accounts_group.command(name="list")
@customer_id_option
@click.pass_context
def list_accounts(ctx: click.Context, customer_id: Optional[str]) -> None:
    """List every account aggregated for the customer."""
    with open_client(ctx, customer_id) as client:
        try:
            accounts = client.accounts()
        except IntuitCADError as e:
            fail("Listing accounts failed", e)
    echo_json(accounts)


@accounts_group.command(name="show")
@click.argument("account_id")
@customer_id_option
@click.pass_context
def show_account(ctx: click.Context, account_id: str, customer_id: Optional[str]) -> None:
    """Show a single account."""
    with open_client(ctx, customer_id) as client:
        try:
            account = client.account(account_id)
        except IntuitCADError as e:
            fail(f"Fetching account {account_id} failed", e)
    if account is None:
        click.echo(f"Account {account_id} not found", err=True)
        raise click.exceptions.Exit(1)
    echo_json(account)


@accounts_group.command(name="transactions")
@click.argument("account_id")
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=True,
    help="First day of the range (YYYY-MM-DD)",
)
@click.option(
    "--end",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Last day of the range (YYYY-MM-DD, default: today)",
)
@customer_id_option
@click.pass_context
def transactions(
    ctx: click.Context,
    account_id: str,
    start: datetime,
    end: Optional[datetime],
    customer_id: Optional[str],
) -> None:
    """Show account transactions between two dates.

    Example:
        intuit-cad accounts transactions 400000 --start 2024-01-01 --end 2024-01-31
    """
    if end is not None and end < start:
        raise click.BadParameter("--end must not be before --start", param_hint="--end")

    with open_client(ctx, customer_id) as client:
        try:
            data = client.transactions(
                account_id, start.date(), end.date() if end else None
            )
        except IntuitCADError as e:
            fail(f"Fetching transactions for account {account_id} failed", e)
    echo_json(data)
