"""Account Aggregation Example.

This example walks through a complete session against the Customer Account
Data API for one customer.

Key features demonstrated:
- Loading configuration from config/config.json and INTUIT_CAD_* variables
- Signing a SAML assertion and checking it locally before the exchange
- Discovering accounts at an institution, answering MFA questions on stdin
- Listing accounts and recent transactions

Run after `pip install -e .` with credentials in the environment:

    INTUIT_CAD_CUSTOMER_ID=customer-42 python examples/account_aggregation_example.py 100000
"""

import sys
from datetime import date, timedelta

from intuit_cad import CustomerAccountDataClient, load_config
from intuit_cad.logging_audit import configure_logging
from intuit_cad.saml import AssertionBuilder, SignatureVerifier, signed_assertion_xml
from intuit_cad.utils.exceptions import IntuitCADError


def example_verify_assertion(config):
    """Example 1: Sign an assertion and verify it the way the provider will."""
    print("\n" + "=" * 70)
    print("Example 1: Signed SAML Assertion")
    print("=" * 70)

    assertion = AssertionBuilder().build(config.saml.provider_id, config.customer_id)
    signed_xml = signed_assertion_xml(assertion, config.saml.private_key_path)

    verifier = SignatureVerifier.from_private_key_file(config.saml.private_key_path)
    is_valid, message = verifier.verify_and_validate(assertion, signed_xml)

    print(f"\n✓ Assertion {assertion.reference_id}")
    print(f"  • Valid from: {assertion.time_before}")
    print(f"  • Valid until: {assertion.time_after}")
    print(f"  • Local check: {message}")
    return is_valid


def ask(challenge):
    """Prompt for one MFA answer; numbered choices submit their value."""
    print(f"\n? {challenge.question}")
    for index, choice in enumerate(challenge.choices, start=1):
        print(f"  {index}. {choice.text}")
    reply = input("> ").strip()
    if challenge.choices:
        return challenge.choices[int(reply) - 1]
    return reply


def example_discover_accounts(client, institution_id):
    """Example 2: Log in to an institution, answering MFA until done."""
    print("\n" + "=" * 70)
    print("Example 2: Discover and Add Accounts")
    print("=" * 70)

    details = client.institution(institution_id)
    keys = [key["name"] for key in (details or {}).get("keys", [])]
    print(f"\nInstitution {institution_id} expects credentials: {keys}")

    username = input("Username: ")
    password = input("Password: ")
    result = client.discover_and_add_accounts(
        institution_id, username, password, keys[0], keys[1]
    )

    while result.is_challenged:
        session = result.challenge_session
        answers = [ask(challenge) for challenge in session.challenges]
        result = client.respond_to_challenge(session.answer(*answers))

    print(f"\n✓ {len(result.accounts)} account(s) added")
    return result.accounts


def example_recent_transactions(client):
    """Example 3: Print the last 30 days of transactions per account."""
    print("\n" + "=" * 70)
    print("Example 3: Recent Transactions")
    print("=" * 70)

    start = date.today() - timedelta(days=30)
    for account in client.accounts():
        account_id = str(account["accountId"])
        data = client.transactions(account_id, start)
        count = sum(len(v) for k, v in (data or {}).items() if k.endswith("Transactions"))
        print(f"  • {account_id} ({account.get('accountNickname', 'no nickname')}): {count}")


def main():
    if len(sys.argv) != 2:
        print(f"Usage: {sys.argv[0]} INSTITUTION_ID")
        return 2

    config = load_config()
    configure_logging(level="WARNING", log_file=config.logging.log_file)

    try:
        if not example_verify_assertion(config):
            print("\n✗ Assertion failed local verification; check the private key")
            return 1
        with CustomerAccountDataClient(config) as client:
            example_discover_accounts(client, sys.argv[1])
            example_recent_transactions(client)
    except IntuitCADError as e:
        print(f"\n✗ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
