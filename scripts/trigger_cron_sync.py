"""
Trigger the cron sync endpoint from an external scheduler.
"""

from __future__ import annotations

import argparse
import json
import os

import requests

from db.config import load_env_files


def main() -> int:
    load_env_files()
    parser = argparse.ArgumentParser(description="Call /api/cron/sync and print the report.")
    parser.add_argument(
        "--url",
        dest="url",
        default=os.getenv("APP_URL", "http://localhost:8000"),
        help="Base URL of the API (defaults to APP_URL).",
    )
    parser.add_argument(
        "--timeout",
        dest="timeout",
        type=float,
        default=float(os.getenv("CRON_SYNC_MAX_DURATION_SECONDS", "300")),
        help="Request timeout in seconds.",
    )
    args = parser.parse_args()

    headers = {}
    secret = os.getenv("CRON_SECRET", "").strip()
    if secret:
        headers["x-cron-secret"] = secret

    url = f"{args.url.rstrip('/')}/api/cron/sync"
    try:
        response = requests.get(url, headers=headers, timeout=args.timeout)
    except requests.RequestException as exc:
        print(f"Cron sync request failed: {exc}")
        return 1

    print(f"Status: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    raise SystemExit(main())
