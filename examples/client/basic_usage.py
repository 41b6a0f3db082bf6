"""
Basic usage example of IdentityClient.

This example creates an account from an email address and a passphrase,
backs up its encrypted state, logs in again from a second client and
fetches the current BTC price.
"""

import logging
import os
import sys

from musqet import ClientConfig, IdentityClient


def main() -> None:
    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    email = os.getenv("MUSQET_EMAIL", "alice@example.com")
    passphrase = os.getenv("MUSQET_PASSPHRASE", "correct horse battery staple")
    config = ClientConfig(log_level=logging.INFO)

    client = IdentityClient(config)
    client.subscribe(lambda status: logger.info("Status: %s", status))

    if not client.signup("Alice", email, passphrase) or not client.backup():
        logger.error("Signup failed: %s", client.errors[-1])
        sys.exit(1)
    logger.info("Account %s (fingerprint %s)", client.handle, client.fingerprint)

    # A second device only needs the same email and passphrase
    other = IdentityClient(config)
    if not other.login(email, passphrase):
        logger.error("Login failed: %s", other.errors[-1])
        sys.exit(1)
    logger.info("Restored account for %s", other.state.name)

    quote = other.get_price("GBP")
    if quote is not None:
        logger.info("1 BTC = %s%s", quote.symbol, quote.price)

    logger.info("Basic usage example completed")


if __name__ == "__main__":
    main()
