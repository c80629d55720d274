#!/usr/bin/env python3
"""
Validate that the configured gateway credentials can obtain a token.

Reads PEPDORSA_* variables (or .env) and performs one authentication call.
"""

import asyncio
import sys
from datetime import datetime, timezone

from pydantic import ValidationError as PydanticValidationError

from pepdorsa import PepDorsaClient, get_settings
from pepdorsa.exceptions import AuthenticationError, TransportError


def check_settings():
    """Load settings from the environment."""
    print("⚙️  Loading gateway settings...")
    try:
        settings = get_settings()
    except PydanticValidationError as e:
        print(f"❌ Settings incomplete: {e}")
        return None

    print(f"✅ Gateway: {settings.base_url} (terminal {settings.terminal_number})")
    return settings


async def check_token(settings):
    """Authenticate once against the gateway."""
    print("\n🔑 Requesting token...")
    async with PepDorsaClient(settings) as client:
        try:
            await client.get_token()
        except AuthenticationError as e:
            print(f"❌ Gateway refused credentials: {e.envelope}")
            return False
        except TransportError as e:
            print(f"❌ Gateway unreachable: {e}")
            return False

        expires_at = datetime.fromtimestamp(client.token_cache.expires_at, tz=timezone.utc)
        print(f"✅ Token issued, valid until {expires_at.isoformat()}")
        return True


def main():
    """Run all validation checks."""
    print("🚀 Validating Pep Gateway Connection\n")

    settings = check_settings()
    if settings is None:
        return False

    ok = asyncio.run(check_token(settings))
    if ok:
        print("\n🎉 Gateway connection validated successfully!")
    else:
        print("\n⚠️  Validation failed. Please review the issues above.")
    return ok


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
