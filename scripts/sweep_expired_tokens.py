#!/usr/bin/env python3
"""
Borrar tokens de verificación y de reseteo vencidos
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root))

from sqlmodel import Session

from app.core.database import engine
from app.services.tokens import password_reset_tokens, verification_tokens


def sweep(session: Session, now: datetime) -> dict:
    return {
        "email_verification_tokens": verification_tokens(session).delete_expired(before=now),
        "password_reset_tokens": password_reset_tokens(session).delete_expired(before=now),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Borrar tokens de un solo uso vencidos")
    parser.parse_args()

    with Session(engine) as session:
        deleted = sweep(session, datetime.utcnow())

    for table, count in deleted.items():
        print(f"🧹 {table}: {count} tokens vencidos borrados")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
