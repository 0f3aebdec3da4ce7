#!/usr/bin/env python3
"""
Verify SatuSehat credentials and connectivity.

Usage:
    python scripts/verify_credentials.py [--mode sandbox|production] [--patient-id ID]

Reads IHS_CLIENT_SECRET and IHS_SECRET_KEY from the environment (or .env).
"""

import argparse
import asyncio
import sys

from satusehat import SatuSehatClient, configure_logging
from satusehat.crypto import load_public_key
from satusehat.errors import SatuSehatError


def report(ok: bool, name: str, detail: str) -> bool:
    print(f"  [{'OK' if ok else 'FAIL'}] {name}: {detail}")
    return ok


async def check_token(client: SatuSehatClient) -> bool:
    try:
        detail = await client.auth()
    except SatuSehatError as e:
        return report(False, "Access token", e.message)
    return report(True, "Access token", f"expires in {detail.expires_in}s")


async def check_key_file(client: SatuSehatClient) -> bool:
    config = await client.config()
    try:
        key = await load_public_key(config.kyc_pem_file)
    except SatuSehatError as e:
        return report(False, "KYC public key", e.message)
    return report(True, "KYC public key", f"{config.kyc_pem_file} ({key.key_size} bits)")


async def check_consent(client: SatuSehatClient, patient_id: str) -> bool:
    result = await client.consent.get(patient_id)
    resource_type = result.get("resourceType", "unknown")
    return report(resource_type == "Consent", "Consent", f"returned {resource_type}")


async def run(args: argparse.Namespace) -> int:
    overrides = {"mode": args.mode}

    async with SatuSehatClient(overrides) as client:
        config = await client.config()
        configure_logging(level=config.log_level, json_format=config.log_json)
        print(f"\nVerifying SatuSehat {config.mode.value} access\n")
        print("=" * 60)

        results = [await check_token(client), await check_key_file(client)]
        if args.patient_id and results[0]:
            results.append(await check_consent(client, args.patient_id))

        print("=" * 60)

    passed = sum(results)
    total = len(results)

    if all(results):
        print(f"\nAll {total} checks OK")
        return 0
    else:
        print(f"\n{passed}/{total} checks OK")
        return 1


def main():
    parser = argparse.ArgumentParser(description="Verify SatuSehat credentials")
    parser.add_argument(
        "--mode",
        default=None,
        help="Environment mode (default: IHS_MODE or sandbox)",
    )
    parser.add_argument(
        "--patient-id",
        default=None,
        help="IHS patient identifier to read consent for",
    )
    args = parser.parse_args()

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
