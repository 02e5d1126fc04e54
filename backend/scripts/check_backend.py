#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  poetry run python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []
    warnings = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Copy from backend/.env.example and set DATABASE_URL, etc.")
    else:
        print("OK  .env exists")

    # 2) DB connection and quote pool
    try:
        from sqlalchemy import text
        from aura_notify.db.session import engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            quotes = conn.execute(text("SELECT COUNT(*) FROM motivational_quotes")).scalar()
        print("OK  Database connection (DATABASE_URL)")
        if not quotes:
            warnings.append("motivational_quotes is empty; run scripts/seed_quotes.py")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) Push + AI config
    try:
        from aura_notify.config import settings
        from aura_notify.services.push import NoopPushSender, build_push_sender
        if isinstance(build_push_sender(settings), NoopPushSender):
            warnings.append(f"Push provider '{settings.push_provider}' not configured; sends will be skipped")
        else:
            print(f"OK  Push provider ({settings.push_provider})")
        if not settings.openai_api_key:
            warnings.append("OPENAI_API_KEY not set; premium users get static quotes")
        if not settings.motivation_test_secret:
            warnings.append("MOTIVATION_TEST_SECRET not set; /motivation/send-now will return 500")
    except Exception as e:
        errors.append(f"Config: {e}")
        print("FAIL Config:", e)

    # 4) App import (catches missing deps, bad imports)
    try:
        from aura_notify.main import app  # noqa: F401
        print("OK  App import (aura_notify.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    for w in warnings:
        print("WARN", w)
    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: poetry run uvicorn aura_notify.main:app --host 0.0.0.0 --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
