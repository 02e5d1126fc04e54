#!/usr/bin/env python3
"""
Send daily motivation to all opted-in users NOW (test mode: ignores time-of-day and once-per-day).
Uses backend/.env for DATABASE_URL, OPENAI_API_KEY (optional, premium AI quotes) and push credentials.
Run: cd backend && poetry run python scripts/send_now.py
"""
import asyncio
import logging
import sys
from pathlib import Path

# Ensure backend is on path when run as script
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from aura_notify.core.errors import DispatchError
from aura_notify.scheduler.motivation_job import build_dispatcher


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    try:
        result = asyncio.run(build_dispatcher().run(test_mode=True))
    except DispatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Done. Sent to {result.sent_count} user(s) ({result.recipients} recipients, "
          f"{result.permanent_failures} dead tokens, {result.transient_failures} failed).")


if __name__ == "__main__":
    main()
