#!/usr/bin/env python
"""Interactive Plaid credential setup.

Checks a client_id/secret pair by creating a throwaway Link token, then
offers to save the pair in the system keychain so it never has to live in
``.env``.

Usage:
    python -m scripts.setup_plaid
"""

import sys

from integrations.exceptions import ProviderError
from integrations.plaid_client import PlaidClient
from services.credential_manager import set_credential

ENVIRONMENT_CHOICES = {"1": "sandbox", "2": "production"}


def validate_credentials(client_id: str, secret: str, environment: str) -> None:
    """Create a Link token with the given credentials.

    Raises:
        ProviderError: If Plaid rejects the credentials or cannot be reached.
    """
    client = PlaidClient(client_id=client_id, secret=secret, environment=environment)
    client.create_link_token("setup-check")


def store_credentials(credentials: dict[str, str]) -> bool:
    """Save credentials in the keychain; returns False if any write failed."""
    ok = True
    for key, value in credentials.items():
        if set_credential(key, value):
            print(f"  Stored {key} in keychain")
        else:
            print(f"  Failed to store {key}")
            ok = False
    return ok


def main() -> int:
    print("Plaid API Setup")
    print("=" * 50)
    print("Find your client_id and secret under Developers > Keys at")
    print("https://dashboard.plaid.com/")
    print()

    client_id = input("Plaid client_id: ").strip()
    secret = input("Plaid secret: ").strip()
    if not client_id or not secret:
        print("Error: both client_id and secret are required")
        return 1

    print()
    print("Environment:  1. sandbox   2. production")
    choice = input("Choice [1]: ").strip() or "1"
    environment = ENVIRONMENT_CHOICES.get(choice, "sandbox")

    print(f"\nValidating credentials against {environment}...")
    try:
        validate_credentials(client_id, secret, environment)
    except ProviderError as e:
        print(f"Error: {e}")
        print("Check that the secret belongs to the selected environment.")
        return 1
    print("Credentials are valid.")

    answer = input("\nStore the credentials in the system keychain? [Y/n] ").strip().lower()
    if answer in ("", "y", "yes"):
        if not store_credentials({"PLAID_CLIENT_ID": client_id, "PLAID_SECRET": secret}):
            return 1
    else:
        print("\nAdd the following to your .env file:")
        print(f"PLAID_CLIENT_ID={client_id}")
        print(f"PLAID_SECRET={secret}")

    print(f"PLAID_ENVIRONMENT={environment}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
