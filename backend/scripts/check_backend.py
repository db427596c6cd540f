#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  python scripts/check_backend.py
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

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Copy from backend/.env.example and set OPENAI_API_KEY.")
    else:
        print("OK  .env exists")

    # 2) OpenAI key (chat replies fail with 503 without it)
    try:
        from perpology.config import settings

        if settings.openai_api_key or os.getenv("OPENAI_API_KEY"):
            print(f"OK  OPENAI_API_KEY set (model {settings.ai_model})")
        else:
            errors.append("OPENAI_API_KEY is not set; /chat/send will fail.")
            print("FAIL OPENAI_API_KEY missing")
    except Exception as e:
        errors.append(f"Settings: {e}")
        print("FAIL Settings:", e)

    # 3) DB connection and tables
    try:
        from sqlalchemy import inspect, text

        from perpology.db.session import engine
        from perpology.db.tables import ALL_TABLE_NAMES

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names())
        if missing:
            print(f"WARN Tables not created yet: {sorted(missing)} (created on startup, or run alembic upgrade head)")
        else:
            print("OK  Tables present")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 4) App import (catches missing deps, bad imports)
    try:
        from perpology.main import app  # noqa: F401

        print("OK  App import (perpology.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)
        print("\nFix the above, then run:")
        print("  cd backend && uvicorn perpology.main:app --reload --host 0.0.0.0 --port 8000")
        return 1

    # 5) Market feeds (non-fatal: the chat degrades to no market context)
    try:
        from perpology.services.market import MarketDataGateway

        data = MarketDataGateway().snapshot("BTC")
        if data and data.get("price") is not None:
            print(f"OK  Market data (BTC {data['price']})")
        else:
            print("WARN Market data unavailable; replies will have no live prices")
    except Exception as e:
        print("WARN Market data check failed:", e)

    # 6) Port 8000
    try:
        import socket

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 8000))
        print("OK  Port 8000 is free")
    except OSError:
        errors.append("Port 8000 is in use. Stop the other process or use another port (e.g. --port 8001).")
        print("FAIL Port 8000 is in use")

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn perpology.main:app --reload")
    return 0


if __name__ == "__main__":
    sys.exit(main())
