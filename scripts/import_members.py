"""
Queue a bulk member import on a running console and follow it to the end.

Example:
    python scripts/import_members.py users.txt --site-item-id 3f2a... \
        --base-url http://localhost:8000/_functions --token $ADMIN_TOKEN
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path

import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from member_console.importer import attach_passwords, parse_import_lines
from member_console.types import FINAL_JOB_STATES

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
FINAL_STATES = {state.value for state in FINAL_JOB_STATES}


def _headers(token: str | None) -> dict:
    return {"Authorization": f"Bearer {token}"} if token else {}


def main() -> int:
    parser = argparse.ArgumentParser(description="Bulk member import")
    parser.add_argument("path", help="File with one email (or email:password) per line")
    parser.add_argument("--site-item-id", required=True, help="Registry id of the managed site")
    parser.add_argument(
        "--base-url",
        default=os.environ.get("MEMBER_CONSOLE_URL", "http://localhost:8000/_functions"),
        help="Console API root",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("ADMIN_TOKEN"),
        help="Admin token (defaults to $ADMIN_TOKEN)",
    )
    parser.add_argument(
        "--generate-passwords",
        action="store_true",
        help="Treat the file as plain emails and generate a password for each",
    )
    parser.add_argument(
        "--delay-seconds",
        type=float,
        default=None,
        help="Pause between two registrations",
    )
    parser.add_argument(
        "--poll-seconds",
        type=float,
        default=2.0,
        help="Seconds between job status checks",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    text = Path(args.path).read_text(encoding="utf-8")
    if args.generate_passwords:
        text, count = attach_passwords(text)
        logger.info("Generated passwords for %d user(s)", count)
    users = parse_import_lines(text)
    if not users:
        logger.error("No users with passwords to import.")
        return 1

    base_url = args.base_url.rstrip("/")
    payload = {
        "siteItemId": args.site_item_id,
        "users": [{"email": u.email, "password": u.password} for u in users],
    }
    if args.delay_seconds is not None:
        payload["delaySeconds"] = args.delay_seconds

    response = requests.post(
        f"{base_url}/importUsers",
        json=payload,
        headers=_headers(args.token),
        timeout=REQUEST_TIMEOUT,
    )
    if response.status_code != 202:
        logger.error("Import request failed (%d): %s", response.status_code, response.text)
        return 1
    job_id = response.json()["jobId"]
    logger.info("Queued import job %s for %d user(s)", job_id, len(users))

    reported: set[int] = set()
    while True:
        status_resp = requests.get(
            f"{base_url}/importJobs/{job_id}",
            headers=_headers(args.token),
            timeout=REQUEST_TIMEOUT,
        )
        status_resp.raise_for_status()
        job = status_resp.json()
        for row in job.get("rows") or []:
            if row["status"] != "PENDING" and row["index"] not in reported:
                reported.add(row["index"])
                print(f"{row['status']:<8} {row['email']:<40} {row['message']}")
        if job["status"] in FINAL_STATES:
            print(
                f"Job {job_id} {job['status']}: {job['succeeded']} succeeded, "
                f"{job['failed']} failed."
            )
            if job.get("error"):
                print(f"Error: {job['error']}")
            return 0 if job["status"] == "COMPLETED" else 1
        time.sleep(args.poll_seconds)


if __name__ == "__main__":
    raise SystemExit(main())
