#!/usr/bin/env python3
"""CoinGecko API key setup script.

Validates a CoinGecko demo API key with a test price lookup and offers
to store it in the OS keychain, where the app's settings pick it up.

Usage:
    1. Create a free demo key at https://www.coingecko.com/en/api
    2. Run this script and paste the key when prompted
"""

from integrations.coingecko_client import CoinGeckoClient
from integrations.exceptions import ProviderError
from services.credential_manager import set_credential

KEY_NAME = "COINGECKO_API_KEY"


def validate_api_key(api_key: str) -> str:
    """Fetch the BTC price with the key to prove it works.

    Returns:
        The fetched price as text, for display.

    Raises:
        ProviderError: If the lookup fails.
    """
    client = CoinGeckoClient(api_key=api_key)
    try:
        return str(client.get_latest_price("BTC").price)
    finally:
        client.close()


def main():
    """Prompt for the API key, validate it, and store it."""
    print("CoinGecko API Setup")
    print("=" * 40)

    api_key = input("CoinGecko demo API key: ").strip()
    if not api_key:
        print("No key entered; nothing to do.")
        return

    try:
        price = validate_api_key(api_key)
    except ProviderError as e:
        print(f"\nValidation failed: {e}")
        return
    print(f"\nKey works (BTC = ${price})")

    answer = input("\nStore this key in the OS keychain? [Y/n] ").strip().lower()
    if answer in ("", "y", "yes"):
        if set_credential(KEY_NAME, api_key):
            print(f"  Stored {KEY_NAME} in keychain")
        else:
            print(f"  Failed to store {KEY_NAME}")
    else:
        print(f"  Skipped. Set {KEY_NAME} in your .env instead.")


if __name__ == "__main__":
    main()
