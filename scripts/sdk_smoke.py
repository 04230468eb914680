#!/usr/bin/env python3
"""
SDK smoke test against a running imds-switch service.

Fetches credentials through botocore's own instance metadata client, so the
check covers exactly what an SDK sees, then switches to each configured role
in turn and confirms the SDK follows.

Usage:
    python scripts/sdk_smoke.py                              # http://127.0.0.1:8080
    python scripts/sdk_smoke.py --base-url http://169.254.169.254
    python scripts/sdk_smoke.py --restore                    # switch back when done

Requires a registry whose roles can actually be assumed.
"""

import argparse
import sys
import time

import httpx
from botocore.utils import InstanceMetadataFetcher


def wait_for_health(client: httpx.Client, max_attempts: int = 10, interval: float = 1.0) -> bool:
    """Wait for service to become healthy."""
    for attempt in range(1, max_attempts + 1):
        try:
            if client.get("/health").status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        if attempt < max_attempts:
            time.sleep(interval)
    return False


def fetch_with_sdk(base_url: str) -> dict:
    fetcher = InstanceMetadataFetcher(timeout=5, num_attempts=1, base_url=base_url)
    return fetcher.retrieve_iam_role_credentials()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--base-url", default="http://127.0.0.1:8080", help="Service base URL")
    parser.add_argument("--restore", action="store_true", help="Re-activate the original role afterwards")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=10.0) as client:
        if not wait_for_health(client):
            print(f"❌ Service at {args.base_url} is not healthy")
            return 1

        original = client.get("/roles", params={"status": "active"}).json()["roles"][0]
        aliases = client.get("/roles").json()["roles"]
        print(f"Roles: {', '.join(aliases)} (active: {original})")

        failures = 0
        try:
            for alias in aliases:
                client.post("/roles", json={"alias": alias}).raise_for_status()
                creds = fetch_with_sdk(args.base_url)
                if creds.get("role_name") != alias or not creds.get("access_key"):
                    print(f"❌ {alias}: SDK returned {creds.get('role_name')!r}")
                    failures += 1
                    continue
                print(f"✅ {alias}: {creds['access_key'][:8]}... expires {creds['expiry_time']}")
        finally:
            if args.restore:
                client.post("/roles", json={"alias": original})

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
