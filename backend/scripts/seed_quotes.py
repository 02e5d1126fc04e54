#!/usr/bin/env python3
"""
Add the starter motivational quotes to motivational_quotes (skips texts already present).
New quotes have last_sent_date NULL, so the round-robin serves them before any sent quote.
Run: cd backend && poetry run python scripts/seed_quotes.py
"""
import sys
from pathlib import Path

# Ensure backend is on path when run as script
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from aura_notify.data.starter_quotes import STARTER_QUOTES
from aura_notify.db.session import SessionLocal
from aura_notify.services.directory import seed_quotes


def main():
    db = SessionLocal()
    try:
        added = seed_quotes(db, STARTER_QUOTES)
        print(f"Added {added} quotes to motivational_quotes ({len(STARTER_QUOTES) - added} already present).")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
